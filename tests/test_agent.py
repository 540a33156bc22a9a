"""Tests for the conversational agent."""

import logging
from concurrent.futures import ThreadPoolExecutor

import pytest

from querybot.agent import ConversationAgent
from querybot.exceptions import ProtocolError, ValidationError
from querybot.schemas import QueryStatus


def _context_blocks(prompt: str) -> int:
    """Count prior Q/A blocks in a prompt."""
    return prompt.count("\nA: ")


class TestSubmitQuery:
    """Test query submission and history recording."""

    def test_completed_result(self, make_client):
        """Successful inference marks the result completed."""
        agent = ConversationAgent(make_client(["Paris"]))

        result = agent.submit_query("Capital of France?")

        assert result.query == "Capital of France?"
        assert result.answer == "Paris"
        assert result.status == QueryStatus.COMPLETED
        assert result.error is None
        assert agent.get_history() == (result,)

    def test_failed_result_recorded(self, make_client, unavailable_error):
        """Inference failure is returned as a failed result and kept in history."""
        agent = ConversationAgent(make_client([unavailable_error]))

        result = agent.submit_query("Capital of France?")

        assert result.status == QueryStatus.FAILED
        assert result.error is unavailable_error
        assert result.answer.startswith("Error: ")
        assert "connection refused" in result.answer
        assert agent.get_history() == (result,)

    def test_query_preserved_verbatim(self, fake_client):
        """The query field equals the input, whitespace included."""
        agent = ConversationAgent(fake_client)
        result = agent.submit_query("  spaced query \n")
        assert result.query == "  spaced query \n"

    def test_empty_query_rejected(self, fake_client):
        """Empty queries raise and leave history untouched."""
        agent = ConversationAgent(fake_client)

        with pytest.raises(ValidationError):
            agent.submit_query("")

        assert agent.get_history() == ()
        assert fake_client.prompts == []

    @pytest.mark.parametrize("text", ["   ", "\n\t"])
    def test_whitespace_query_submitted(self, fake_client, text):
        """Whitespace-only queries are not empty and go to the model."""
        agent = ConversationAgent(fake_client)

        result = agent.submit_query(text)

        assert result.status == QueryStatus.COMPLETED
        assert result.query == text
        assert len(agent.get_history()) == 1
        assert len(fake_client.prompts) == 1

    def test_never_returns_started(self, make_client):
        """Status after the call is completed or failed."""
        agent = ConversationAgent(make_client(["a", ProtocolError("bad shape"), "c"]))

        statuses = [agent.submit_query(q).status for q in ("one", "two", "three")]

        assert QueryStatus.STARTED not in statuses
        assert statuses == [QueryStatus.COMPLETED, QueryStatus.FAILED, QueryStatus.COMPLETED]

    def test_model_passed_to_client(self):
        """The agent's model override reaches the client."""
        seen = {}

        class Client:
            def generate(self, prompt, model=None):
                seen["model"] = model
                return "ok"

        ConversationAgent(Client(), model="llama3").submit_query("hi")
        assert seen["model"] == "llama3"

    def test_injected_logger_used(self, fake_client, caplog):
        """Components log through the logger they are given."""
        log = logging.getLogger("test.agent")

        with caplog.at_level(logging.INFO, logger="test.agent"):
            ConversationAgent(fake_client, logger=log).submit_query("hello")

        assert any(record.name == "test.agent" for record in caplog.records)


class TestBuildPrompt:
    """Test prompt assembly with conversation context."""

    def test_empty_history_has_no_context(self, fake_client):
        """Without history there is no context section."""
        prompt = ConversationAgent(fake_client).build_prompt("hello")

        assert "Previous conversation context" not in prompt
        assert _context_blocks(prompt) == 0
        assert "Current query: hello" in prompt

    def test_formatting_rules_first(self, fake_client):
        """The five formatting rules lead the prompt."""
        prompt = ConversationAgent(fake_client).build_prompt("hello")

        assert prompt.startswith("You are a helpful AI assistant.")
        for n in range(1, 6):
            assert f"\n{n}. " in prompt
        assert prompt.endswith("Remember to format your response according to the rules above.")

    def test_completed_history_in_order(self, make_client):
        """N completed queries give N blocks in submission order."""
        agent = ConversationAgent(make_client(["A1", "A2", "A3"]))
        for q in ("Q1", "Q2", "Q3"):
            agent.submit_query(q)

        prompt = agent.build_prompt("Q4")

        assert _context_blocks(prompt) == 3
        assert "1. Q: Q1\nA: A1\n\n" in prompt
        assert "2. Q: Q2\nA: A2\n\n" in prompt
        assert "3. Q: Q3\nA: A3\n\n" in prompt
        assert prompt.index("Q: Q1") < prompt.index("Q: Q2") < prompt.index("Q: Q3")
        assert prompt.index("Q: Q3") < prompt.index("Current query: Q4")

    def test_failed_entry_excluded_but_kept(self, make_client, unavailable_error):
        """Failed queries stay in history but add no context."""
        agent = ConversationAgent(make_client(["A1", unavailable_error, "A3"]))
        for q in ("Q1", "Q2", "Q3"):
            agent.submit_query(q)

        prompt = agent.build_prompt("Q4")

        assert len(agent.get_history()) == 3
        assert _context_blocks(prompt) == 2
        assert "Q: Q2" not in prompt
        assert "Error:" not in prompt

    def test_numbering_keeps_history_position(self, make_client, unavailable_error):
        """Blocks keep their index in the full history after skips."""
        agent = ConversationAgent(make_client([unavailable_error, "A2"]))
        agent.submit_query("Q1")
        agent.submit_query("Q2")

        prompt = agent.build_prompt("Q3")

        assert "2. Q: Q2\nA: A2" in prompt
        assert "1. Q:" not in prompt

    def test_prompt_sent_contains_prior_context(self, make_client):
        """The second request carries the first exchange."""
        client = make_client(["A1", "A2"])
        agent = ConversationAgent(client)
        agent.submit_query("Q1")
        agent.submit_query("Q2")

        assert _context_blocks(client.prompts[0]) == 0
        assert "1. Q: Q1\nA: A1" in client.prompts[1]

    def test_build_prompt_is_pure(self, make_client):
        """Building a prompt does not change history."""
        agent = ConversationAgent(make_client(["A1"]))
        agent.submit_query("Q1")

        first = agent.build_prompt("next")
        second = agent.build_prompt("next")

        assert first == second
        assert len(agent.get_history()) == 1


class TestHistoryLifecycle:
    """Test history access, reset and close."""

    def test_clear_history(self, make_client):
        """Clearing empties history and the next prompt has no context."""
        client = make_client(["A1", "A2"])
        agent = ConversationAgent(client)
        agent.submit_query("Q1")

        agent.clear_history()

        assert agent.get_history() == ()
        agent.submit_query("Q2")
        assert _context_blocks(client.prompts[-1]) == 0

    def test_history_snapshot_is_read_only(self, fake_client):
        """get_history returns an immutable snapshot."""
        agent = ConversationAgent(fake_client)
        agent.submit_query("Q1")

        snapshot = agent.get_history()
        agent.submit_query("Q2")

        assert isinstance(snapshot, tuple)
        assert len(snapshot) == 1
        assert len(agent.get_history()) == 2

    def test_results_are_immutable(self, fake_client):
        """Recorded results cannot be modified."""
        agent = ConversationAgent(fake_client)
        result = agent.submit_query("Q1")

        with pytest.raises(AttributeError):
            result.answer = "changed"

    def test_close_is_idempotent(self, fake_client):
        """Close clears history and can be called repeatedly."""
        agent = ConversationAgent(fake_client)
        agent.submit_query("Q1")

        agent.close()
        agent.close()

        assert agent.get_history() == ()

    def test_concurrent_submissions_all_recorded(self, fake_client):
        """A shared agent records every concurrent submission."""
        agent = ConversationAgent(fake_client)

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(agent.submit_query, [f"Q{i}" for i in range(50)]))

        assert len(agent.get_history()) == 50
        assert {r.query for r in agent.get_history()} == {f"Q{i}" for i in range(50)}
