from __future__ import annotations

import unittest

from grana_agent.actions.advice import financial_advice
from grana_agent.actions.categories import create_category
from grana_agent.actions.goals import create_goal, update_goal
from grana_agent.actions.payloads import build_payload
from grana_agent.actions.transactions import create_transaction
from grana_agent.errors import ActionValidationError, AmbiguousMatchError

from .support import USER_ID, add_bill, handler_context, make_store


class CreateTransactionTests(unittest.TestCase):
    def test_expense_auto_creates_category_with_budget(self) -> None:
        store = make_store()
        ctx = handler_context(store)

        result = create_transaction(
            build_payload(
                "create_transaction",
                {"amount": 120, "description": "Supermercado", "category": "Supermercado", "type": "expense"},
            ),
            ctx,
        )

        self.assertEqual(len(store.categories), 1)
        category = store.categories[0]
        self.assertEqual(category["name"], "Supermercado")
        self.assertEqual(category["type"], "expense")
        self.assertEqual(category["budget"], 1200)
        self.assertEqual(category["icon"], "🛒")
        transaction = store.transactions[0]
        self.assertEqual(transaction["amount"], -120)
        self.assertEqual(transaction["category_id"], category["id"])
        self.assertEqual(transaction["payment_method"], "cash")
        self.assertTrue(result.data["category_created"])
        self.assertIn("Supermercado", result.message)

    def test_existing_category_matched_by_substring(self) -> None:
        store = make_store()
        existing = store.create_category(USER_ID, {"name": "Alimentação", "type": "expense", "budget": 900})
        ctx = handler_context(store)

        create_transaction(build_payload("create_transaction", {"amount": 35, "category": "alimentacao"}), ctx)

        self.assertEqual(len(store.categories), 1)
        self.assertEqual(store.transactions[0]["category_id"], existing["id"])
        self.assertEqual(store.transactions[0]["type"], "expense")

    def test_income_is_positive_with_zero_budget_category(self) -> None:
        store = make_store()
        ctx = handler_context(store)

        create_transaction(
            build_payload("create_transaction", {"amount": "R$ 3.000,00", "category": "Salário", "type": "income"}),
            ctx,
        )

        self.assertEqual(store.transactions[0]["amount"], 3000)
        self.assertEqual(store.categories[0]["budget"], 0)

    def test_category_created_earlier_in_turn_is_reused(self) -> None:
        store = make_store()
        ctx = handler_context(store)

        create_transaction(build_payload("create_transaction", {"amount": 10, "category": "Pets"}), ctx)
        create_transaction(build_payload("create_transaction", {"amount": 20, "category": "Pets"}), ctx)

        self.assertEqual(len(store.categories), 1)


class CreateCategoryTests(unittest.TestCase):
    def test_default_budgets(self) -> None:
        store = make_store()
        ctx = handler_context(store)

        create_category(build_payload("create_category", {"name": "Jogos", "type": "expense"}), ctx)
        create_category(build_payload("create_category", {"name": "Salário", "type": "income"}), ctx)

        budgets = {c["name"]: c["budget"] for c in store.categories}
        self.assertEqual(budgets, {"Jogos": 500, "Salário": 0})

    def test_obvious_name_without_type(self) -> None:
        store = make_store()
        ctx = handler_context(store)

        create_category(build_payload("create_category", {"name": "Freelance"}), ctx)

        self.assertEqual(store.categories[0]["type"], "income")

    def test_unresolvable_type_is_rejected(self) -> None:
        ctx = handler_context(make_store())

        with self.assertRaises(ActionValidationError):
            create_category(build_payload("create_category", {"name": "Jogos"}), ctx)

    def test_duplicate_name_and_type_is_rejected(self) -> None:
        store = make_store()
        store.create_category(USER_ID, {"name": "Jogos", "type": "expense", "budget": 500})
        ctx = handler_context(store)

        with self.assertRaises(ActionValidationError):
            create_category(build_payload("create_category", {"name": "jogos", "type": "expense"}), ctx)

        self.assertEqual(len(store.categories), 1)


class GoalTests(unittest.TestCase):
    def _store_with_goal(self, **fields):
        store = make_store()
        goal = store.create_goal(
            USER_ID,
            {"title": "Viagem", "target_amount": 5000, "current_amount": 1000, "status": "active", **fields},
        )
        return store, goal

    def test_create_goal(self) -> None:
        store = make_store()
        ctx = handler_context(store)

        result = create_goal(
            build_payload("create_goal", {"title": "Reserva", "target_amount": "10 mil", "target_date": "2026-12-31"}),
            ctx,
        )

        goal = store.goals[0]
        self.assertEqual(goal["target_amount"], 10000)
        self.assertEqual(goal["current_amount"], 0)
        self.assertEqual(goal["status"], "active")
        self.assertEqual(goal["target_date"], "2026-12-31")
        self.assertIn("R$ 10.000,00", result.message)

    def test_aporte_adds_to_progress_and_records_contribution(self) -> None:
        store, goal = self._store_with_goal(contributions=[])
        ctx = handler_context(store)

        update_goal(build_payload("update_goal", {"title": "viagem", "aporte": 500}), ctx)

        self.assertEqual(store.goals[0]["current_amount"], 1500)
        self.assertEqual(store.goals[0]["target_amount"], 5000)
        self.assertEqual([c["amount"] for c in store.goals[0]["contributions"]], [500])

    def test_target_amount_replaces_objective(self) -> None:
        store, _ = self._store_with_goal()
        ctx = handler_context(store)

        update_goal(build_payload("update_goal", {"title": "Viagem", "target_amount": 8000}), ctx)

        self.assertEqual(store.goals[0]["target_amount"], 8000)
        self.assertEqual(store.goals[0]["current_amount"], 1000)

    def test_bare_amount_is_not_guessed(self) -> None:
        store, _ = self._store_with_goal()
        ctx = handler_context(store)

        with self.assertRaises(ActionValidationError):
            update_goal(build_payload("update_goal", {"title": "Viagem", "amount": 500}), ctx)

        self.assertEqual(store.goals[0]["current_amount"], 1000)

    def test_single_active_goal_resolves_without_identifier(self) -> None:
        store, _ = self._store_with_goal()
        store.create_goal(USER_ID, {"title": "Carro", "target_amount": 30000, "status": "completed"})
        ctx = handler_context(store)

        update_goal(build_payload("update_goal", {"aporte": 4000}), ctx)

        viagem = next(g for g in store.goals if g["title"] == "Viagem")
        self.assertEqual(viagem["current_amount"], 5000)
        self.assertEqual(viagem["status"], "completed")

    def test_several_active_goals_without_identifier_is_ambiguous(self) -> None:
        store, _ = self._store_with_goal()
        store.create_goal(USER_ID, {"title": "Carro", "target_amount": 30000, "status": "active"})
        ctx = handler_context(store)

        with self.assertRaises(AmbiguousMatchError):
            update_goal(build_payload("update_goal", {"aporte": 100}), ctx)


class FinancialAdviceTests(unittest.TestCase):
    def test_reports_savings_top_category_and_next_bill(self) -> None:
        store = make_store()
        mercado = store.create_category(USER_ID, {"name": "Mercado", "type": "expense"})
        store.create_transaction(USER_ID, {"amount": 4000, "type": "income", "transaction_date": "2026-03-01"})
        store.create_transaction(
            USER_ID,
            {"amount": -900, "type": "expense", "category_id": mercado["id"], "transaction_date": "2026-03-03"},
        )
        add_bill(store, "Luz", 180, due_in_days=4)
        ctx = handler_context(store)

        result = financial_advice(build_payload("financial_advice", {}), ctx)

        self.assertEqual(result.data["savings"], 3100)
        self.assertEqual(result.data["top_expense_category"], "Mercado")
        self.assertIn("R$ 3.100,00", result.message)
        self.assertIn("Próxima conta: Luz", result.message)


if __name__ == "__main__":
    unittest.main()
