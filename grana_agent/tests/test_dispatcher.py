from __future__ import annotations

import unittest

from grana_agent.actions import dispatch_actions

from .support import handler_context, make_analysis, make_store


class DispatchActionsTests(unittest.TestCase):
    def test_failed_action_does_not_stop_the_rest(self) -> None:
        store = make_store()
        analysis = make_analysis(
            [
                ("create_transaction", {"description": "sem valor"}),
                ("create_goal", {"title": "Viagem", "target_amount": 5000}),
            ]
        )

        outcome = dispatch_actions(analysis, handler_context(store))

        self.assertTrue(outcome.success)
        self.assertEqual([a.executed for a in outcome.actions], [False, True])
        self.assertEqual(outcome.actions[0].error_kind, "validation")
        self.assertIsNone(outcome.actions[1].error_kind)
        self.assertEqual(len(store.goals), 1)
        self.assertEqual(store.transactions, [])
        self.assertIn("Dados insuficientes", outcome.message)
        self.assertIn("Viagem", outcome.message)

    def test_all_failed_is_not_success(self) -> None:
        store = make_store()
        analysis = make_analysis([("delete_bill", {"title": "Academia"})])

        outcome = dispatch_actions(analysis, handler_context(store))

        self.assertFalse(outcome.success)
        self.assertEqual(outcome.actions[0].error_kind, "not_found")
        self.assertIn("Academia", outcome.message)

    def test_action_data_overrides_extracted_data(self) -> None:
        store = make_store()
        analysis = make_analysis(
            [("create_transaction", {"amount": 45})],
            extracted_data={"amount": 999, "description": "Farmácia", "category": "Saúde"},
        )

        outcome = dispatch_actions(analysis, handler_context(store))

        self.assertTrue(outcome.success)
        self.assertEqual(store.transactions[0]["amount"], -45)
        self.assertEqual(store.transactions[0]["description"], "Farmácia")

    def test_store_failure_is_reported_per_action(self) -> None:
        store = make_store()
        store.fail_operations.add("create_goal")
        analysis = make_analysis([("create_goal", {"title": "Viagem", "target_amount": 5000})])

        outcome = dispatch_actions(analysis, handler_context(store))

        self.assertFalse(outcome.success)
        self.assertEqual(outcome.actions[0].error_kind, "persistence")
        self.assertIn("criar a meta", outcome.message)

    def test_no_actions_uses_response_message(self) -> None:
        analysis = make_analysis(response_message="Olá! Como posso ajudar?")

        outcome = dispatch_actions(analysis, handler_context(make_store()))

        self.assertTrue(outcome.success)
        self.assertEqual(outcome.message, "Olá! Como posso ajudar?")
        self.assertEqual(outcome.actions, [])

    def test_no_actions_and_no_message_is_not_success(self) -> None:
        outcome = dispatch_actions(make_analysis(), handler_context(make_store()))

        self.assertFalse(outcome.success)


if __name__ == "__main__":
    unittest.main()
