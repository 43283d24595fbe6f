from __future__ import annotations

from microlesson.phases import PHASE_ORDER, SIMULATION_PHASES, Phase, PhaseGraph


def test_order_is_fixed_and_complete() -> None:
    graph = PhaseGraph()

    assert graph.total == 10
    assert graph.first is Phase.HOOK
    assert graph.last is Phase.MASTERY
    assert graph.order() == list(PHASE_ORDER)
    assert [graph.position(p) for p in graph.order()] == list(range(1, 11))


def test_boundaries_return_none() -> None:
    graph = PhaseGraph()

    assert graph.prev(Phase.HOOK) is None
    assert graph.next(Phase.MASTERY) is None
    assert graph.next(Phase.PLAY) is Phase.REVIEW
    assert graph.prev(Phase.TWIST_PREDICT) is Phase.REVIEW


def test_unknown_identifiers_return_none() -> None:
    graph = PhaseGraph()

    assert graph.next("bogus") is None
    assert graph.prev("bogus") is None
    assert graph.index_of("bogus") is None
    assert graph.next(None) is None
    assert graph.index_of(4) is None
    assert graph.next("play") is Phase.REVIEW
    assert graph.index_of("hook") == 0


def test_parse_accepts_only_known_identifiers() -> None:
    graph = PhaseGraph()

    assert graph.parse("play") is Phase.PLAY
    assert graph.parse(" twist_review ") is Phase.TWIST_REVIEW
    assert graph.parse(Phase.TEST) is Phase.TEST
    assert graph.parse("warp_drive") is None
    assert graph.parse("") is None
    assert graph.parse(None) is None
    assert graph.parse(3) is None
    assert graph.is_valid("mastery") is True
    assert graph.is_valid("PLAY") is False


def test_topic_labels_override_defaults() -> None:
    graph = PhaseGraph(labels={Phase.TWIST_PLAY: "Head Crash"})

    assert graph.label(Phase.TWIST_PLAY) == "Head Crash"
    assert graph.label(Phase.HOOK) == "Introduction"
    labels = graph.labels()
    assert len(labels) == 10
    assert labels[5] == "Head Crash"


def test_simulation_phases() -> None:
    assert SIMULATION_PHASES == {Phase.PLAY, Phase.TWIST_PLAY}


def test_next_and_prev_are_inverse_inside_the_order() -> None:
    graph = PhaseGraph()

    for phase in graph.order()[1:]:
        prev = graph.prev(phase)
        assert prev is not None
        assert graph.next(prev) is phase
    for phase in graph.order()[:-1]:
        nxt = graph.next(phase)
        assert nxt is not None
        assert graph.prev(nxt) is phase
