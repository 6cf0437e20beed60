from __future__ import annotations

from conftest import FakeFactory, det

from person_tracking.tracking.registry import RegistryConfig, TrackRegistry, greedy_associate


def make_registry(factory, **kwargs) -> TrackRegistry:
    return TrackRegistry(RegistryConfig(**kwargs), factory)


def test_track_survives_exactly_max_misses_updates(frame, factory):
    reg = make_registry(factory, max_misses=10)
    reg.init_with_detections(frame, [det(10, 10, 20, 20)])

    for i in range(10):
        snaps = reg.update(frame, None)
        assert [s.track_id for s in snaps] == [0], f"dropped early at update {i + 1}"
        assert snaps[0].misses == i + 1

    assert reg.update(frame, None) == []
    assert len(reg) == 0


def test_greedy_association_matches_and_spawns(frame, factory):
    reg = make_registry(factory)
    reg.init_with_detections(frame, [det(0, 0, 10, 10)])
    reg.update(frame, None)

    snaps = reg.update(frame, [det(0, 0, 10, 10), det(100, 100, 10, 10)])

    by_id = {s.track_id: s for s in snaps}
    assert set(by_id) == {0, 1}
    assert by_id[0].box == (0, 0, 10, 10)
    assert by_id[0].misses == 0
    assert by_id[1].box == (100, 100, 10, 10)
    assert len(factory.created) == 2


def test_low_overlap_detection_spawns_instead_of_matching(frame, factory):
    reg = make_registry(factory, association_iou=0.2)
    reg.init_with_detections(frame, [det(0, 0, 10, 10)])

    # iou((0,0,10,10), (8,8,10,10)) = 4/196
    snaps = reg.update(frame, [det(8, 8, 10, 10)])

    assert [s.track_id for s in snaps] == [0, 1]
    assert snaps[0].misses == 1


def test_greedy_associate_first_track_wins():
    matches, unmatched = greedy_associate(
        [(0, (0, 0, 10, 10)), (1, (1, 1, 10, 10))],
        [(1, 1, 10, 10)],
        0.2,
    )
    # track 0 is visited first and claims the only detection
    assert matches == {0: 0}
    assert unmatched == []


def test_greedy_associate_ties_go_to_first_detection():
    matches, unmatched = greedy_associate([(3, (10, 0, 10, 10))], [(5, 0, 10, 10), (15, 0, 10, 10)], 0.2)
    assert matches == {3: 0}
    assert unmatched == [1]


def test_detection_updates_class_and_box(frame, factory):
    reg = make_registry(factory)
    reg.init_with_detections(frame, [det(50, 50, 40, 40, name="person")])
    snaps = reg.update(frame, [det(52, 52, 40, 40, name="pedestrian")])
    assert snaps[0].box == (52, 52, 40, 40)
    assert snaps[0].class_name == "pedestrian"


def test_ids_strictly_increase_and_survive_clear(frame, factory):
    reg = make_registry(factory)
    reg.init_with_detections(frame, [det(0, 0, 10, 10), det(100, 100, 10, 10)])
    reg.clear()
    assert len(reg) == 0

    snaps = reg.init_with_detections(frame, [det(200, 200, 10, 10)])
    assert [s.track_id for s in snaps] == [2]

    snaps = reg.update(frame, [det(200, 200, 10, 10), det(400, 300, 10, 10)])
    assert [s.track_id for s in snaps] == [2, 3]
    assert reg.next_id == 4


def test_static_frame_follows_tracker_without_drift(frame):
    sequence = [(True, (20 + i, 30, 40, 50)) for i in range(5)]
    factory = FakeFactory(script=list(sequence))
    reg = make_registry(factory)
    reg.init_with_detections(frame, [det(20, 30, 40, 50)])

    boxes = [reg.update(frame, None)[0].box for _ in range(5)]

    assert boxes == [b for _, b in sequence]
    # each update is fed the box the tracker reported last
    assert factory.created[0].update_calls == [(20, 30, 40, 50)] + boxes[:-1]


def test_correlation_success_does_not_reset_misses(frame, factory):
    reg = make_registry(factory)
    reg.init_with_detections(frame, [det(10, 10, 20, 20)])
    for _ in range(3):
        snaps = reg.update(frame, None)
    assert snaps[0].misses == 3
    assert snaps[0].age == 3


def test_empty_detection_list_is_a_miss(frame, factory):
    reg = make_registry(factory, max_misses=0)
    reg.init_with_detections(frame, [det(10, 10, 20, 20)])
    assert reg.update(frame, []) == []


def test_update_failure_removes_track(frame):
    reg = make_registry(FakeFactory(script=[(False, (0, 0, 0, 0))]))
    reg.init_with_detections(frame, [det(10, 10, 20, 20)])
    assert reg.update(frame, None) == []


def test_update_exception_removes_track(frame, capsys):
    reg = make_registry(FakeFactory(raises=True))
    reg.init_with_detections(frame, [det(10, 10, 20, 20)])
    assert reg.update(frame, None) == []
    assert "[WARN]" in capsys.readouterr().out


def test_degenerate_prediction_removes_track(frame):
    reg = make_registry(FakeFactory(script=[(True, (10, 10, 0, 20))]))
    reg.init_with_detections(frame, [det(10, 10, 20, 20)])
    assert reg.update(frame, None) == []


def test_failed_removal_does_not_block_respawn(frame):
    factory = FakeFactory(script=[(False, (0, 0, 0, 0))])
    reg = make_registry(factory)
    reg.init_with_detections(frame, [det(10, 10, 20, 20)])

    snaps = reg.update(frame, [det(10, 10, 20, 20)])

    assert [s.track_id for s in snaps] == [1]


def test_init_failure_drops_detection_without_consuming_id(frame):
    reg = make_registry(FakeFactory(init_ok=False))
    assert reg.update(frame, [det(10, 10, 20, 20)]) == []
    assert reg.next_id == 0


def test_non_positive_detection_is_not_spawned(frame, factory):
    reg = make_registry(factory)
    assert reg.update(frame, [det(10, 10, 0, 20), det(10, 10, 20, -1)]) == []
    assert factory.created == []


def test_predicted_boxes_are_clamped(frame):
    reg = make_registry(FakeFactory(script=[(True, (620, 470, 40, 40))]))
    reg.init_with_detections(frame, [det(600, 440, 30, 30)])
    snaps = reg.update(frame, None)
    assert snaps[0].box == (620, 470, 20, 10)


def test_spawned_boxes_are_clamped(frame, factory):
    snaps = make_registry(factory).update(frame, [det(-10, -10, 30, 30)])
    assert snaps[0].box == (0, 0, 20, 20)
    assert factory.created[0].init_calls == [(0, 0, 20, 20)]


def test_empty_frame_only_ages_misses(frame, empty_frame, factory):
    reg = make_registry(factory, max_misses=1)
    reg.init_with_detections(frame, [det(10, 10, 20, 20)])

    snaps = reg.update(empty_frame, [det(100, 100, 20, 20)])
    assert [s.misses for s in snaps] == [1]
    assert factory.created[0].update_calls == []
    assert len(factory.created) == 1

    assert reg.update(empty_frame, None) == []


def test_init_with_detections_replaces_tracks(frame, factory):
    reg = make_registry(factory)
    reg.init_with_detections(frame, [det(0, 0, 10, 10)])
    snaps = reg.init_with_detections(frame, [det(50, 50, 10, 10), det(0, 0, 0, 10)])
    assert [(s.track_id, s.box) for s in snaps] == [(1, (50, 50, 10, 10))]


def test_init_with_detections_ignores_empty_frame(frame, empty_frame, factory, capsys):
    reg = make_registry(factory)
    reg.init_with_detections(frame, [det(0, 0, 10, 10)])
    snaps = reg.init_with_detections(empty_frame, [det(50, 50, 10, 10)])
    assert [s.track_id for s in snaps] == [0]
    assert "[WARN]" in capsys.readouterr().out


def test_tracker_construction_failure_drops_detection(frame, capsys):
    def broken_factory():
        raise RuntimeError("tracker create failed")

    reg = make_registry(broken_factory)
    assert reg.update(frame, [det(10, 10, 20, 20)]) == []
    assert reg.init_with_detections(frame, [det(50, 50, 20, 20)]) == []
    assert reg.next_id == 0
    assert "[WARN]" in capsys.readouterr().out


def test_zero_association_threshold_never_matches_disjoint_boxes(frame, factory):
    reg = make_registry(factory, association_iou=0.0)
    reg.init_with_detections(frame, [det(0, 0, 10, 10)])

    snaps = reg.update(frame, [det(300, 300, 10, 10)])

    assert [(s.track_id, s.box, s.misses) for s in snaps] == [(0, (0, 0, 10, 10), 1), (1, (300, 300, 10, 10), 0)]


def test_greedy_associate_ignores_zero_overlap():
    matches, unmatched = greedy_associate([(0, (0, 0, 10, 10))], [(50, 50, 10, 10)], 0.0)
    assert matches == {}
    assert unmatched == [0]
