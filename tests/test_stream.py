"""
Unit tests for gigtrip/api/conversation/stream.py
"""
from unittest.mock import MagicMock

from gigtrip.api.conversation.directives import DirectiveKind
from gigtrip.api.conversation.stream import ConversationStream
from gigtrip.api.models import Message


class TestConversationStream:

    def test_streams_into_placeholder(self, llm):
        llm.queue("Hello", " there", " [ASK_HOTELS]")
        transcript = [Message(role="user", content="hi", display="hi")]
        on_directive, on_complete = MagicMock(), MagicMock()

        message = ConversationStream(llm).send(transcript, on_directive=on_directive, on_complete=on_complete)

        assert transcript[-1] is message
        assert message.content == "Hello there [ASK_HOTELS]"
        assert message.display == "Hello there"
        on_directive.assert_called_once()
        assert on_directive.call_args.args[0].kind == DirectiveKind.ASK_HOTELS
        on_complete.assert_called_once_with(message, None)

    def test_sends_raw_history_without_placeholder(self, llm):
        transcript = [
            Message(role="user", content="Taylor Swift please", display="Taylor Swift please"),
            Message(role="assistant", content="Sure! [SEARCH_EVENT: Taylor Swift]", display="Sure!"),
            Message(role="user", content="the first one", display="the first one"),
        ]
        ConversationStream(llm).send(transcript)
        assert llm.calls[0] == [
            {"role": "user", "content": "Taylor Swift please"},
            {"role": "assistant", "content": "Sure! [SEARCH_EVENT: Taylor Swift]"},
            {"role": "user", "content": "the first one"},
        ]

    def test_updates_never_show_partial_directive(self, llm):
        llm.queue("Looking", " [SEARCH_", "EVENT: Taylor Sw", "ift]", " now.")
        displays = []
        ConversationStream(llm).send(
            [Message(role="user", content="x")],
            on_update=lambda m: displays.append(m.display),
        )
        assert all("[" not in d for d in displays)
        assert displays[-1] == "Looking  now."

    def test_second_send_refused_while_in_flight(self, llm):
        stream = ConversationStream(llm)
        transcript = []
        placeholder = stream.begin(transcript)
        assert placeholder is not None
        assert stream.is_streaming
        assert stream.begin(transcript) is None
        assert len(transcript) == 1

        stream.run(transcript, placeholder)
        assert not stream.is_streaming

    def test_failure_keeps_partial_text_and_reports(self, llm):
        llm.queue("Partial answer", RuntimeError("connection reset"))
        on_complete = MagicMock()
        stream = ConversationStream(llm)

        message = stream.send([Message(role="user", content="x")], on_complete=on_complete)

        assert message.display == "Partial answer"
        error = on_complete.call_args.args[1]
        assert isinstance(error, RuntimeError)
        assert not stream.is_streaming

    def test_directive_handler_error_does_not_stop_stream(self, llm):
        llm.queue("[CONFIRM_EVENT]", " Is that right?")
        on_directive = MagicMock(side_effect=ValueError("bad"))
        message = ConversationStream(llm).send([], on_directive=on_directive)
        assert message.display == "Is that right?"
