from webagent.models import TranscriptEntry
from webagent.transcript import ChatTranscript


def _entry(i):
    return TranscriptEntry(role="user" if i % 2 == 0 else "assistant", content=f"m{i}")


def test_last_n_returns_most_recent_in_order():
    t = ChatTranscript()
    for i in range(8):
        t.append(_entry(i))
    assert len(t) == 8
    assert [e.content for e in t.last_n(5)] == ["m3", "m4", "m5", "m6", "m7"]


def test_last_n_shorter_than_window():
    t = ChatTranscript([_entry(0), _entry(1)])
    assert [e.content for e in t.last_n(5)] == ["m0", "m1"]
    assert t.last_n(0) == []


def test_entries_are_not_shared_with_callers():
    original = _entry(0)
    t = ChatTranscript()
    t.append(original)
    original.content = "edited"
    got = t.last_n(1)[0]
    assert got.content == "m0"
    got.content = "also edited"
    assert [e.content for e in t] == ["m0"]
