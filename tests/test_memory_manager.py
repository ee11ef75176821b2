"""
Tests for MemoryManager and the pruning strategies.
"""

import pytest

from agentrun.domain import Message, MessageRole, Session, ToolCall
from agentrun.memory import (
    EmbeddingScorer,
    ExtractiveSummarizer,
    HybridStrategy,
    LexicalScorer,
    MemoryManager,
    SemanticStrategy,
    SlidingWindowStrategy,
    SummarizationStrategy,
    cosine_similarity,
    group_messages,
)
from tests.conftest import FlatEstimator


def build_session(*texts: str, system: str = "You are helpful.") -> Session:
    """Alternating user/assistant messages."""
    session = Session(id="s1")
    session.set_system_message(system)
    for i, content in enumerate(texts):
        session.append(Message.user(content) if i % 2 == 0 else Message.assistant(content))
    return session


@pytest.fixture
def manager(estimator):
    return MemoryManager(estimator=estimator)


class TestSlidingWindow:
    def test_keeps_system_and_newest_that_fit(self, manager):
        # system + 6 messages at 10 tokens each; budget fits 5
        session = build_session("u1", "a1", "u2", "a2", "u3", "a3")
        window = manager.build_context(session, 50)

        assert [m.text for m in window.messages] == ["You are helpful.", "u2", "a2", "u3", "a3"]
        assert window.token_count == 50
        assert window.dropped == 2
        assert not window.overflow

    def test_everything_fits(self, manager):
        session = build_session("u1", "a1", "u2")
        window = manager.build_context(session, 1000)
        assert window.messages == session.messages
        assert window.dropped == 0

    def test_max_messages(self, estimator):
        manager = MemoryManager(strategy=SlidingWindowStrategy(max_messages=2), estimator=estimator)
        session = build_session("u1", "a1", "u2", "a2", "u3")
        window = manager.build_context(session, 1000)
        assert [m.text for m in window.messages] == ["You are helpful.", "u2", "a2", "u3"]

    def test_idempotent(self, manager):
        session = build_session("u1", "a1", "u2", "a2", "u3", "a3")
        assert manager.build_context(session, 40).messages == manager.build_context(session, 40).messages

    @pytest.mark.parametrize("budget", [20, 30, 45, 60, 75])
    def test_never_exceeds_budget(self, manager, budget):
        session = build_session(*[f"m{i}" for i in range(9)])
        window = manager.build_context(session, budget)
        assert window.token_count <= budget
        assert window.messages[0].role == MessageRole.SYSTEM
        assert window.messages[-1].text == "m8"

    def test_non_positive_budget(self, manager):
        with pytest.raises(ValueError):
            manager.build_context(build_session("u1"), 0)


class TestToolGrouping:
    def test_tool_results_stay_with_their_call(self, manager):
        session = build_session("u1", "a1")
        session.append(Message.user("weather?"))
        session.append(Message.assistant(tool_calls=[ToolCall(id="c1", name="get_weather")]))
        session.append(Message.tool("c1", "get_weather", "sunny"))
        session.append(Message.assistant("It is sunny."))
        session.append(Message.user("and tomorrow?"))
        session.append(Message.assistant(tool_calls=[ToolCall(id="c2", name="get_weather")]))
        session.append(Message.tool("c2", "get_weather", "rain"))

        for budget in range(40, 120, 10):
            window = manager.build_context(session, budget)
            ids = [m.id for m in window.messages]
            for pos, msg in enumerate(window.messages):
                if msg.role == MessageRole.TOOL:
                    issuer = next(
                        m for m in session.messages if m.tool_calls and any(c.id == msg.tool_call_id for c in m.tool_calls)
                    )
                    assert issuer.id in ids[:pos]

    def test_group_messages(self, estimator):
        messages = [
            Message.user("q"),
            Message.assistant(tool_calls=[ToolCall(id="a", name="x"), ToolCall(id="b", name="y")]),
            Message.tool("a", "x", "1"),
            Message.tool("b", "y", "2"),
            Message.assistant("done"),
        ]
        groups = group_messages(messages, estimator)
        assert [len(g.messages) for g in groups] == [1, 3, 1]
        assert groups[1].tokens == 30


class TestOverflow:
    def test_minimal_context_returned_with_warning(self, manager):
        session = build_session("u1", "a1", "u2")
        window = manager.build_context(session, 15)

        assert window.overflow
        assert [m.text for m in window.messages] == ["You are helpful.", "u2"]
        assert window.warnings[0].kind == "ContextOverflow"
        assert window.warnings[0].details == {"required_tokens": 20, "budget_tokens": 15}

    def test_current_turn_tool_exchange_kept(self, manager):
        session = build_session("u1", "a1", "weather?")
        session.append(Message.assistant(tool_calls=[ToolCall(id="c1", name="get_weather")]))
        session.append(Message.tool("c1", "get_weather", "sunny"))
        window = manager.build_context(session, 15)

        assert window.overflow
        assert [m.role for m in window.messages] == [
            MessageRole.SYSTEM,
            MessageRole.USER,
            MessageRole.ASSISTANT,
            MessageRole.TOOL,
        ]
        assert window.messages[-1].text == "sunny"
        assert window.dropped == 2
        assert window.token_count == 40
        assert window.warnings[0].details == {"required_tokens": 40, "budget_tokens": 15}


class TestPinned:
    def test_pinned_message_survives_pruning(self, manager):
        session = Session(id="s1")
        session.set_system_message("sys")
        session.append(Message.user("my name is Ada", pinned=True))
        for i in range(6):
            session.append(Message.assistant(f"a{i}") if i % 2 == 0 else Message.user(f"u{i}"))
        window = manager.build_context(session, 50)

        texts = [m.text for m in window.messages]
        assert "my name is Ada" in texts
        assert texts[0] == "sys"
        assert texts[-1] == "u5"
        assert window.token_count <= 50

    def test_oldest_pinned_dropped_first(self, manager):
        session = Session(id="s1")
        session.set_system_message("sys")
        session.append(Message.user("p1", pinned=True))
        session.append(Message.assistant("a1"))
        session.append(Message.user("p2", pinned=True))
        session.append(Message.assistant("a2"))
        session.append(Message.user("now"))

        # sys + now leave room for one pinned message
        window = manager.build_context(session, 30)

        assert [m.text for m in window.messages] == ["sys", "p2", "now"]
        assert window.dropped == 3

    def test_non_pinned_never_outlives_pinned(self, manager):
        session = Session(id="s1")
        session.set_system_message("sys")
        session.append(
            Message.assistant(tool_calls=[ToolCall(id="c1", name="lookup")], pinned=True)
        )
        session.append(Message.tool("c1", "lookup", "found"))
        session.append(Message.user("p2", pinned=True))
        session.append(Message.assistant("a1"))
        session.append(Message.user("now"))

        # 20 tokens left: the 20-token pinned tool group plus "p2" do not fit.
        # Dropping the older pinned group frees room "a1" could use, but
        # non-pinned history must not survive a dropped pinned group.
        window = manager.build_context(session, 40)

        assert [m.text for m in window.messages] == ["sys", "p2", "now"]
        assert all(m.role != MessageRole.TOOL for m in window.messages)
        assert window.token_count == 30

    def test_all_pinned_fit_alongside_history(self, manager):
        session = Session(id="s1")
        session.set_system_message("sys")
        session.append(Message.user("p1", pinned=True))
        session.append(Message.assistant("a1"))
        session.append(Message.user("p2", pinned=True))
        session.append(Message.assistant("a2"))
        session.append(Message.user("now"))

        window = manager.build_context(session, 50)

        assert [m.text for m in window.messages] == ["sys", "p1", "p2", "a2", "now"]


class TestSummarization:
    def test_summary_replaces_dropped_history(self, estimator):
        manager = MemoryManager(strategy=SummarizationStrategy(), estimator=estimator)
        session = build_session("u1", "a1", "u2", "a2", "u3", "a3")
        window = manager.build_context(session, 50)

        assert window.messages[0].role == MessageRole.SYSTEM
        summary = window.messages[1]
        assert summary.is_summary
        assert summary.role == MessageRole.ASSISTANT
        assert summary.text.startswith("Summary of 3 earlier messages:")
        assert [m.text for m in window.messages[2:]] == ["a2", "u3", "a3"]
        assert window.token_count <= 50

    def test_summary_is_deterministic(self, estimator):
        manager = MemoryManager(strategy=SummarizationStrategy(), estimator=estimator)
        session = build_session("u1", "a1", "u2", "a2", "u3", "a3")
        first = manager.build_context(session, 40).messages
        second = manager.build_context(session, 40).messages
        assert first == second

    def test_no_summary_when_everything_fits(self, estimator):
        manager = MemoryManager(strategy=SummarizationStrategy(), estimator=estimator)
        session = build_session("u1", "a1", "u2")
        window = manager.build_context(session, 1000)
        assert not any(m.is_summary for m in window.messages)

    def test_extractive_summarizer_lines(self, estimator):
        messages = [
            Message.user("What is the weather in Paris?"),
            Message.assistant(tool_calls=[ToolCall(id="c1", name="get_weather")]),
            Message.tool("c1", "get_weather", "sunny"),
        ]
        text = ExtractiveSummarizer()(group_messages(messages, estimator))
        assert text.splitlines() == [
            "Summary of 3 earlier messages:",
            "- user: What is the weather in Paris?",
            "- assistant called get_weather",
            "- tool get_weather: sunny",
        ]


class TestSemantic:
    def test_relevant_history_preferred(self, estimator):
        manager = MemoryManager(strategy=SemanticStrategy(threshold=0.1), estimator=estimator)
        session = build_session(
            "tell me about python packaging",
            "python packaging uses pyproject files",
            "what is the capital of France",
            "Paris is the capital",
            "recommend a soup recipe",
            "try tomato soup",
            "how do I publish python packaging metadata",
        )
        window = manager.build_context(session, 40)
        texts = [m.text for m in window.messages]

        assert texts[-1] == "how do I publish python packaging metadata"
        assert "python packaging uses pyproject files" in texts
        assert "Paris is the capital" not in texts
        assert window.token_count <= 40

    def test_lexical_scorer(self):
        scorer = LexicalScorer()
        assert scorer.score("python packaging", "python packaging") == 1.0
        assert scorer.score("python", "soup") == 0.0
        assert scorer.score("", "anything") == 0.0

    def test_embedding_scorer(self):
        vectors = {"cats": [1.0, 0.0], "kittens": [0.9, 0.1], "stocks": [0.0, 1.0]}
        scorer = EmbeddingScorer(vectors.__getitem__)
        assert scorer.score("cats", "kittens") > scorer.score("cats", "stocks")
        assert cosine_similarity([1.0, 0.0], [0.0, 0.0]) == 0.0
        with pytest.raises(ValueError):
            cosine_similarity([1.0], [1.0, 2.0])


class TestHybrid:
    def test_recent_relevant_and_summary(self):
        estimator = FlatEstimator()
        manager = MemoryManager(strategy=HybridStrategy(recent_ratio=0.5), estimator=estimator)
        session = build_session(
            "deploy the billing service",
            "billing service deployed",
            "unrelated chatter",
            "more chatter",
            "another topic",
            "still another topic",
            "is the billing service healthy",
        )
        window = manager.build_context(session, 70)
        texts = [m.text for m in window.messages]

        assert texts[0] == "You are helpful."
        assert texts[-1] == "is the billing service healthy"
        assert window.token_count <= 70
        # Recent window, both relevant billing messages, and a summary of the chatter
        assert "still another topic" in texts
        assert "deploy the billing service" in texts
        assert "billing service deployed" in texts
        assert "unrelated chatter" not in texts
        assert window.messages[1].is_summary
        assert window.messages[1].metadata["summarized_messages"] == 2

    def test_invalid_ratio(self):
        with pytest.raises(ValueError):
            HybridStrategy(recent_ratio=1.5)
