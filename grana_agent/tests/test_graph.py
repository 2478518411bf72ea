from __future__ import annotations

import unittest
from unittest.mock import Mock, patch

from grana_agent.errors import AgentTimeoutError, InterpretationError
from grana_agent.graph import (
    FINANCIAL_PATTERNS_PROMPT,
    INTERPRETATION_FAILED_MESSAGE,
    TIMEOUT_MESSAGE,
    analyze_financial_patterns,
    process_command,
)
from grana_agent.session import AgentSession

from .support import TODAY, USER_ID, add_bill, make_analysis, make_store, scripted_analyzer


@patch("grana_agent.router.analyze.ROUTER_MODE", "rules_first")
class ProcessCommandTests(unittest.TestCase):
    def setUp(self) -> None:
        self.store = make_store()
        self.session = AgentSession(user_id=USER_ID)

    def _run(self, message: str, analyzer):
        return process_command(self.session, message, store=self.store, analyzer=analyzer, today=TODAY)

    def test_expense_message_creates_transaction_and_category(self) -> None:
        analyzer = scripted_analyzer(
            make_analysis(
                [
                    (
                        "create_transaction",
                        {"amount": 120, "description": "Supermercado", "category": "Supermercado", "type": "expense"},
                    )
                ],
                intent="transaction",
                confidence=0.95,
                reasoning="gasto informado",
            )
        )

        result = self._run("Gastei 120 reais no supermercado", analyzer)

        self.assertTrue(result.success)
        self.assertEqual(result.confidence, 0.95)
        self.assertTrue(result.actions[0].executed)
        self.assertEqual(self.store.transactions[0]["amount"], -120)
        self.assertEqual(self.store.categories[0]["budget"], 1200)
        self.assertEqual(
            [(t.speaker, t.text) for t in self.session.history.turns],
            [("user", "Gastei 120 reais no supermercado"), ("agent", result.message)],
        )

    def test_bill_inquiry_lists_bills(self) -> None:
        add_bill(self.store, "Luz", 180, due_in_days=2)
        analyzer = Mock()

        result = self._run("Quais contas eu tenho?", analyzer)

        analyzer.assert_not_called()
        self.assertTrue(result.success)
        self.assertEqual([a.type for a in result.actions], ["list_bills"])
        self.assertIn("CONTAS A PAGAR", result.message)

    def test_bill_without_amount_is_clarified_then_created(self) -> None:
        analyzer = scripted_analyzer(
            make_analysis([("create_bill", {"title": "Conta de luz", "due_day": 15})], intent="bill"),
            make_analysis([("create_bill", {"title": "Conta de luz", "due_day": 15, "amount": 180})], intent="bill"),
        )

        first = self._run("Crie conta de luz que vence dia 15", analyzer)

        self.assertTrue(first.needs_clarification)
        self.assertEqual(first.actions, [])
        self.assertIn("valor", first.message)
        self.assertEqual(self.store.bills, [])
        self.assertEqual(len(self.session.history), 2)

        second = self._run("R$ 180", analyzer)

        self.assertTrue(second.success)
        self.assertEqual(self.store.bills[0]["amount"], 180)
        self.assertEqual(self.store.bills[0]["due_date"], "2026-03-15")
        self.assertEqual(len(self.session.history), 4)
        history_seen = analyzer.call_args_list[1].args[2]
        self.assertIn("Crie conta de luz", history_seen.render())

    def test_category_type_question_then_answer(self) -> None:
        analyzer = scripted_analyzer(
            make_analysis([("create_category", {"name": "Jogos"})], intent="category"),
            make_analysis([("create_category", {"name": "Jogos", "type": "expense"})], intent="category"),
        )

        first = self._run("Crie a categoria jogos", analyzer)
        second = self._run("despesas", analyzer)

        self.assertTrue(first.needs_clarification)
        self.assertTrue(second.success)
        self.assertEqual(self.store.categories[0]["type"], "expense")
        self.assertEqual(self.store.categories[0]["budget"], 500)

    def test_type_from_an_earlier_category_is_not_reused(self) -> None:
        analyzer = scripted_analyzer(
            make_analysis([("create_category", {"name": "Freelas", "type": "income"})], intent="category"),
            make_analysis([("create_category", {"name": "Jogos"})], intent="category"),
        )

        first = self._run("Crie a categoria Freelas de receita", analyzer)
        second = self._run("Crie a categoria jogos", analyzer)

        self.assertTrue(first.success)
        self.assertTrue(second.needs_clarification)
        self.assertEqual([(c["name"], c["type"]) for c in self.store.categories], [("Freelas", "income")])

    def test_transaction_and_bill_inquiry_in_one_message(self) -> None:
        add_bill(self.store, "Luz", 180, due_in_days=2)
        analyzer = scripted_analyzer(
            make_analysis(
                [
                    ("create_transaction", {"amount": 50, "description": "Mercado", "type": "expense"}),
                    ("list_bills", {}),
                ],
                intent="transaction",
            )
        )

        result = self._run("Gastei 50 no mercado. Quais contas eu tenho?", analyzer)

        analyzer.assert_called_once()
        self.assertTrue(result.success)
        self.assertEqual([a.type for a in result.actions], ["create_transaction", "list_bills"])
        self.assertEqual(self.store.transactions[0]["amount"], -50)

    def test_unknown_user_gets_authentication_message(self) -> None:
        session = AgentSession(user_id="ghost")
        analyzer = Mock()

        result = process_command(session, "oi", store=self.store, analyzer=analyzer, today=TODAY)

        self.assertFalse(result.success)
        self.assertEqual(result.error_kind, "unauthenticated")
        self.assertEqual(result.message, "❌ Erro: Usuário não autenticado")
        analyzer.assert_not_called()
        self.assertEqual(len(session.history), 2)

    def test_interpretation_failure_has_generic_message_and_no_writes(self) -> None:
        analyzer = Mock(side_effect=InterpretationError("response is not valid JSON", details=["invalid_json"]))

        result = self._run("Gastei 50 no mercado", analyzer)

        self.assertFalse(result.success)
        self.assertEqual(result.error_kind, "interpretation")
        self.assertEqual(result.message, INTERPRETATION_FAILED_MESSAGE)
        self.assertEqual(self.store.transactions, [])
        self.assertEqual(self.session.history.turns[-1].text, INTERPRETATION_FAILED_MESSAGE)

    def test_timeout_is_reported(self) -> None:
        analyzer = Mock(side_effect=AgentTimeoutError("language service timed out"))

        result = self._run("Gastei 50 no mercado", analyzer)

        self.assertFalse(result.success)
        self.assertEqual(result.error_kind, "timeout")
        self.assertEqual(result.message, TIMEOUT_MESSAGE)
        analyzer.assert_called_once()

    def test_context_load_failure_is_not_an_action(self) -> None:
        self.store.fail_operations.add("list_categories")
        analyzer = Mock()

        result = self._run("Gastei 50 no mercado", analyzer)

        self.assertFalse(result.success)
        self.assertEqual(result.error_kind, "persistence")
        analyzer.assert_not_called()

    def test_canned_prompt_runs_through_the_pipeline(self) -> None:
        analyzer = scripted_analyzer(make_analysis([("financial_advice", {})], intent="advice"))

        result = analyze_financial_patterns(self.session, store=self.store, analyzer=analyzer, today=TODAY)

        self.assertTrue(result.success)
        self.assertEqual(analyzer.call_args.args[0], FINANCIAL_PATTERNS_PROMPT)
        self.assertEqual(self.session.history.turns[0].text, FINANCIAL_PATTERNS_PROMPT)


if __name__ == "__main__":
    unittest.main()
