import pytest

from evreactor.channel import Channel, PollEvent


class RecordingLoop:
    def __init__(self):
        self.updates = []
        self.removed = []

    def update_channel(self, channel):
        self.updates.append(channel.events)

    def remove_channel(self, channel):
        self.removed.append(channel)


class Owner:
    pass


def make_channel():
    loop = RecordingLoop()
    channel = Channel(loop, 7)
    calls = []
    channel.read_callback = lambda: calls.append("read")
    channel.write_callback = lambda: calls.append("write")
    channel.close_callback = lambda: calls.append("close")
    channel.error_callback = lambda: calls.append("error")
    return loop, channel, calls


def test_new_channel_state():
    loop = RecordingLoop()
    channel = Channel(loop, 7)
    assert channel.fd == 7
    assert channel.owner_loop is loop
    assert channel.is_none_event()
    assert channel.events == Channel.NONE_EVENT
    assert channel.index == -1


def test_enabled_events_match_poll_flags():
    loop = RecordingLoop()
    channel = Channel(loop, 5)
    assert channel.events == 0
    channel.enable_reading()
    assert channel.events == PollEvent.IN | PollEvent.PRI
    channel.disable_reading()
    channel.enable_writing()
    assert channel.events == PollEvent.OUT
    channel.disable_all()
    assert channel.events == 0


def test_enable_and_disable_update_loop():
    loop, channel, _ = make_channel()
    channel.enable_reading()
    assert channel.is_reading()
    assert not channel.is_writing()
    channel.enable_writing()
    assert channel.is_writing()
    channel.disable_reading()
    assert not channel.is_reading()
    assert channel.is_writing()
    channel.disable_writing()
    assert channel.is_none_event()
    assert loop.updates == [
        Channel.READ_EVENT,
        Channel.READ_EVENT | Channel.WRITE_EVENT,
        Channel.WRITE_EVENT,
        Channel.NONE_EVENT,
    ]


def test_update_events_and_disable_all():
    loop, channel, _ = make_channel()
    channel.update_events(Channel.READ_EVENT | Channel.WRITE_EVENT)
    assert channel.is_reading() and channel.is_writing()
    channel.disable_all()
    assert channel.is_none_event()
    assert len(loop.updates) == 2


def test_remove_requires_no_events():
    loop, channel, _ = make_channel()
    channel.enable_reading()
    with pytest.raises(RuntimeError):
        channel.remove()
    channel.disable_all()
    channel.remove()
    assert loop.removed == [channel]


def test_set_revents_returns_value():
    _, channel, _ = make_channel()
    assert channel.set_revents(PollEvent.IN) == PollEvent.IN
    assert channel.revents == PollEvent.IN


def test_no_dispatch_without_enabled_events():
    _, channel, calls = make_channel()
    channel.set_revents(PollEvent.IN | PollEvent.OUT)
    channel.handle_event()
    assert calls == []


def test_read_dispatch():
    _, channel, calls = make_channel()
    channel.enable_reading()
    channel.set_revents(PollEvent.IN)
    channel.handle_event()
    assert calls == ["read"]


def test_priority_data_dispatches_read():
    _, channel, calls = make_channel()
    channel.enable_reading()
    channel.set_revents(PollEvent.PRI)
    channel.handle_event()
    assert calls == ["read"]


def test_write_dispatch():
    _, channel, calls = make_channel()
    channel.enable_writing()
    channel.set_revents(PollEvent.OUT)
    channel.handle_event()
    assert calls == ["write"]


def test_hangup_without_input_closes():
    _, channel, calls = make_channel()
    channel.enable_reading()
    channel.set_revents(PollEvent.HUP)
    channel.handle_event()
    assert calls == ["close"]


def test_hangup_with_input_reads_instead_of_closing():
    _, channel, calls = make_channel()
    channel.enable_reading()
    channel.set_revents(PollEvent.HUP | PollEvent.IN)
    channel.handle_event()
    assert calls == ["read"]


@pytest.mark.parametrize("flag", [PollEvent.ERR, PollEvent.NVAL])
def test_error_dispatch(flag):
    _, channel, calls = make_channel()
    channel.enable_reading()
    channel.set_revents(flag)
    channel.handle_event()
    assert calls == ["error"]


def test_dispatch_order():
    _, channel, calls = make_channel()
    channel.enable_reading()
    channel.set_revents(PollEvent.HUP | PollEvent.ERR)
    channel.handle_event()
    assert calls == ["close", "error"]


def test_error_then_read_then_write():
    _, channel, calls = make_channel()
    channel.update_events(Channel.READ_EVENT | Channel.WRITE_EVENT)
    channel.set_revents(PollEvent.ERR | PollEvent.IN | PollEvent.OUT)
    channel.handle_event()
    assert calls == ["error", "read", "write"]


def test_event_callback_overrides_others():
    _, channel, calls = make_channel()
    channel.event_callback = lambda: calls.append("event")
    channel.enable_reading()
    channel.set_revents(PollEvent.IN | PollEvent.ERR)
    channel.handle_event()
    assert calls == ["event"]


def test_missing_callbacks_are_skipped():
    loop = RecordingLoop()
    channel = Channel(loop, 3)
    channel.enable_reading()
    channel.set_revents(PollEvent.IN | PollEvent.ERR | PollEvent.HUP)
    channel.handle_event()
    assert channel.revents == PollEvent.IN | PollEvent.ERR | PollEvent.HUP


def test_tied_owner_alive_dispatches():
    _, channel, calls = make_channel()
    owner = Owner()
    channel.tie(owner)
    channel.enable_reading()
    channel.set_revents(PollEvent.IN)
    channel.handle_event()
    assert calls == ["read"]


def test_tied_owner_gone_skips_dispatch():
    _, channel, calls = make_channel()
    owner = Owner()
    channel.tie(owner)
    del owner
    channel.enable_reading()
    channel.set_revents(PollEvent.IN)
    channel.handle_event()
    assert calls == []