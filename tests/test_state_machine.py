from agmanager.core.state_machine import SyncEvent, SyncState, SyncStateMachine


def test_state_machine_single_burst():
    sm = SyncStateMachine()
    assert sm.state == SyncState.IDLE

    sm.transition(SyncEvent.REQUEST)
    assert sm.state == SyncState.PENDING

    sm.transition(SyncEvent.REQUEST)
    assert sm.state == SyncState.PENDING

    sm.transition(SyncEvent.FLUSH)
    assert sm.state == SyncState.FLUSHING
    assert sm.in_flight == 1

    sm.transition(SyncEvent.SETTLE)
    assert sm.state == SyncState.IDLE
    assert sm.in_flight == 0


def test_state_machine_new_burst_overlaps_flush():
    sm = SyncStateMachine()
    sm.transition(SyncEvent.REQUEST)
    sm.transition(SyncEvent.FLUSH)

    sm.transition(SyncEvent.REQUEST)
    assert sm.state == SyncState.PENDING

    # The older flush settling does not end the newer burst
    sm.transition(SyncEvent.SETTLE)
    assert sm.state == SyncState.PENDING
    assert sm.in_flight == 0


def test_state_machine_stays_flushing_until_last_settle():
    sm = SyncStateMachine()
    sm.transition(SyncEvent.REQUEST)
    sm.transition(SyncEvent.FLUSH)
    sm.transition(SyncEvent.REQUEST)
    sm.transition(SyncEvent.FLUSH)
    assert sm.in_flight == 2

    sm.transition(SyncEvent.SETTLE)
    assert sm.state == SyncState.FLUSHING

    sm.transition(SyncEvent.SETTLE)
    assert sm.state == SyncState.IDLE


def test_state_machine_rejects_flush_when_idle(caplog):
    sm = SyncStateMachine()
    with caplog.at_level("WARNING"):
        sm.transition(SyncEvent.FLUSH)
    assert sm.state == SyncState.IDLE
    assert sm.in_flight == 0
    assert "Invalid state transition" in caplog.text
