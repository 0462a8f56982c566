from netreplay.congestion import (
    EcnCc,
    EcnCcFactory,
    NoCC,
    NoCCConfig,
    NoConnectionIdGenerator,
)


class _Recorder:
    def __init__(self, window=100, initial=50):
        self.calls = []
        self._window = window
        self._initial = initial

    def on_sent(self, now, bytes_sent, last_packet_number):
        self.calls.append(("sent", now, bytes_sent, last_packet_number))

    def on_ack(self, now, sent, bytes_acked, app_limited, rtt):
        self.calls.append(("ack", now, sent, bytes_acked, app_limited, rtt))

    def on_end_acks(self, now, in_flight, app_limited, largest_packet_num_acked):
        self.calls.append(("end", now, in_flight, app_limited, largest_packet_num_acked))

    def on_congestion_event(self, now, sent, is_persistent_congestion, lost_bytes):
        self.calls.append(("cong", now, sent, is_persistent_congestion, lost_bytes))

    def on_mtu_update(self, new_mtu):
        self.calls.append(("mtu", new_mtu))

    def window(self):
        return self._window

    def initial_window(self):
        return self._initial

    def clone(self):
        return _Recorder(self._window, self._initial)


class _Factory:
    def __init__(self):
        self.built = []

    def build(self, now, current_mtu):
        controller = _Recorder()
        self.built.append((now, current_mtu, controller))
        return controller


def test_nocc_default_window_is_u64_max():
    controller = NoCCConfig().build(0, 1200)
    assert controller.window() == 2**64 - 1
    assert controller.initial_window() == 2**64 - 1


def test_nocc_window_ignores_events():
    controller = NoCC(NoCCConfig(initial_window=4800))
    controller.on_sent(1, 1000, 3)
    controller.on_ack(2, 1, 1000, False, None)
    controller.on_end_acks(2, 0, False, 3)
    controller.on_congestion_event(3, 1, True, 1000)
    controller.on_mtu_update(1500)
    assert controller.window() == 4800
    assert controller.initial_window() == 4800


def test_nocc_clone_keeps_window():
    controller = NoCCConfig(initial_window=1200).build(0, 1200)
    clone = controller.clone()
    assert clone is not controller
    assert clone.window() == controller.window()


def test_ecn_cc_drops_loss_triggered_events():
    inner = _Recorder()
    cc = EcnCc(inner)
    cc.on_congestion_event(1, 0, False, 500)
    assert inner.calls == []
    cc.on_congestion_event(2, 1, True, 0)
    assert inner.calls == [("cong", 2, 1, True, 0)]


def test_ecn_cc_forwards_everything_else():
    inner = _Recorder(window=77, initial=33)
    cc = EcnCc(inner)
    cc.on_sent(1, 10, 4)
    cc.on_ack(2, 1, 10, True, "rtt")
    cc.on_end_acks(2, 5, False, None)
    cc.on_mtu_update(1400)
    assert inner.calls == [
        ("sent", 1, 10, 4),
        ("ack", 2, 1, 10, True, "rtt"),
        ("end", 2, 5, False, None),
        ("mtu", 1400),
    ]
    assert cc.window() == 77
    assert cc.initial_window() == 33


def test_ecn_cc_clone_wraps_clone_of_inner():
    inner = _Recorder(window=9)
    clone = EcnCc(inner).clone()
    assert isinstance(clone, EcnCc)
    assert clone.window() == inner.window()
    clone.on_mtu_update(1300)
    assert inner.calls == []


def test_ecn_cc_factory_delegates_to_inner_factory():
    inner = _Factory()
    factory = EcnCcFactory(inner)
    controller = factory.build("now", 1200)
    assert len(inner.built) == 1
    assert inner.built[0][:2] == ("now", 1200)
    assert controller is inner.built[0][2]


def test_no_connection_id_generator():
    generator = NoConnectionIdGenerator()
    assert generator.generate_cid() == b""
    assert generator.cid_len() == len(generator.generate_cid())
    assert generator.cid_lifetime() is None