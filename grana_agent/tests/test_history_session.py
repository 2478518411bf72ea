from __future__ import annotations

import unittest

from grana_agent.history import EMPTY_HISTORY_TEXT, ConversationHistory
from grana_agent.session import SessionRegistry


class ConversationHistoryTests(unittest.TestCase):
    def test_keeps_only_the_most_recent_ten_turns(self) -> None:
        history = ConversationHistory(max_turns=10)
        for index in range(15):
            history.add_user_message(f"mensagem {index}")

        self.assertEqual(len(history), 10)
        self.assertEqual([turn.text for turn in history.turns], [f"mensagem {index}" for index in range(5, 15)])

    def test_render_labels_speakers_in_order(self) -> None:
        history = ConversationHistory()
        history.add_user_message("Gastei 50 no mercado")
        history.add_agent_message("Transação criada")

        self.assertEqual(history.render(), "1. USUÁRIO: Gastei 50 no mercado\n2. IA: Transação criada")

    def test_render_empty_history(self) -> None:
        self.assertEqual(ConversationHistory().render(), EMPTY_HISTORY_TEXT)

    def test_rejects_non_positive_capacity(self) -> None:
        with self.assertRaises(ValueError):
            ConversationHistory(max_turns=0)


class SessionRegistryTests(unittest.TestCase):
    def test_get_returns_same_session_per_user(self) -> None:
        registry = SessionRegistry()
        first = registry.get("u-1")
        first.history.add_user_message("oi")

        self.assertIs(registry.get("u-1"), first)
        self.assertIsNot(registry.get("u-2"), first)

    def test_drop_clears_history(self) -> None:
        registry = SessionRegistry()
        session = registry.get("u-1")
        session.history.add_user_message("oi")

        self.assertTrue(registry.drop("u-1"))
        self.assertEqual(len(session.history), 0)
        self.assertFalse(registry.drop("u-1"))
        self.assertEqual(len(registry.get("u-1").history), 0)


if __name__ == "__main__":
    unittest.main()
