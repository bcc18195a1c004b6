import numpy as np
import pytest

from roadview.config import FrustumConfig
from roadview.highlight import SIDE_NAME, SPHERE_NAME, HighlightLifecycleController, HighlightState
from roadview.math import geodesy
from roadview.viewer.render_target import SphereShape


def test_select_is_case_insensitive(controller):
    first = controller.select("PIC_01")
    second = controller.select("  pic_01 ")
    assert first is not None
    assert first == second


def test_select_miss_leaves_state_unchanged(controller, renderer, log_messages):
    controller.select("PIC_01")
    generation = controller.generation
    assert controller.select("PIC_404") is None
    assert controller.state is HighlightState.SELECTED
    assert controller.session.target.id == "PIC_01"
    assert controller.generation == generation
    assert len(renderer.spheres) == 1
    assert any(m.startswith("WARNING|") and "PIC_404" in m for m in log_messages)


def test_select_creates_marker_at_eye_height(controller, renderer, road_points):
    target = controller.select("PIC_01")
    assert controller.state is HighlightState.SELECTED
    assert renderer.point_visibility == {"PIC_01": False}

    (sphere,) = renderer.spheres
    assert isinstance(sphere, SphereShape)
    expected = geodesy.geodetic_to_cartesian(target.position.lon, target.position.lat, target.position.height + 2.0)
    assert np.allclose(sphere.center, expected)
    assert sphere.radius_m == pytest.approx(0.7)
    assert renderer.polygons == []


def test_spawn_requires_ready_and_arming_delay(controller, renderer, tracker, scheduler):
    controller.select("PIC_01")
    tracker.update_view(10.0, 5.0, 90.0)
    assert controller.state is HighlightState.SELECTED
    assert not controller.visible()

    scheduler.advance(299)
    assert controller.state is HighlightState.SELECTED

    scheduler.advance(1)
    assert controller.state is HighlightState.ACTIVE
    assert len(renderer.polygons) == 4
    assert len(controller.session.frustum_side_handles) == 4
    assert controller.visible()


def test_spawn_waits_for_first_view_update(controller, renderer, tracker, scheduler):
    controller.select("PIC_01")
    scheduler.advance(300)
    assert controller.state is HighlightState.SELECTED
    assert controller.session.visibility_armed
    assert not controller.visible()

    tracker.update_view(0.0, 0.0, 90.0)
    assert controller.state is HighlightState.ACTIVE


def test_sides_are_created_once_and_follow_orientation(controller, renderer, tracker, scheduler):
    controller.select("PIC_01")
    tracker.update_view(0.0, 0.0, 90.0)
    scheduler.advance(300)
    handles = list(controller.session.frustum_side_handles)
    polygon = renderer.shapes[handles[0]]
    before = np.array(polygon.positions())

    tracker.update_view(90.0, 0.0, 90.0)
    assert controller.session.frustum_side_handles == handles
    assert len(renderer.polygons) == 4
    after = np.array(polygon.positions())
    assert before.shape == after.shape == (4, 3)
    assert not np.allclose(before, after)


def test_side_positions_are_empty_when_not_ready(controller, tracker, scheduler):
    controller.select("PIC_01")
    tracker.update_view(0.0, 0.0, 90.0)
    scheduler.advance(300)
    tracker.set_scene(45.0)
    assert controller.side_positions(0) == []
    assert not controller.visible()


def test_frustum_recompute_is_idempotent(controller, tracker, scheduler):
    controller.select("PIC_02")
    tracker.update_view(33.0, -10.0, 70.0)
    scheduler.advance(300)
    a = controller.compute_frustum()
    b = controller.compute_frustum()
    assert np.allclose(a.near_corners, b.near_corners)
    assert np.allclose(a.far_corners, b.far_corners)


def test_reselect_within_delay_discards_stale_spawn(controller, renderer, tracker, scheduler):
    tracker.update_view(0.0, 0.0, 90.0)
    controller.select("PIC_01")
    scheduler.advance(200)
    controller.select("PIC_02")

    scheduler.advance(100)  # first selection's timer fires here
    assert controller.state is HighlightState.SELECTED
    assert renderer.polygons == []

    scheduler.advance(200)
    assert controller.state is HighlightState.ACTIVE
    assert controller.session.target.id == "PIC_02"
    assert len(renderer.polygons) == 4
    assert len(renderer.spheres) == 1


def test_new_selection_tears_down_previous_handles(controller, renderer, tracker, scheduler):
    tracker.update_view(0.0, 0.0, 90.0)
    controller.select("PIC_01")
    scheduler.advance(300)
    old_handles = [controller.session.sphere_handle, *controller.session.frustum_side_handles]

    controller.select("PIC_02")
    assert sorted(renderer.removed) == sorted(old_handles)
    assert controller.state is HighlightState.SELECTED
    assert len(renderer.spheres) == 1
    assert renderer.polygons == []
    assert controller.generation == 2


def test_teardown_failure_does_not_block_new_selection(controller, renderer, tracker, scheduler, log_messages):
    tracker.update_view(0.0, 0.0, 90.0)
    controller.select("PIC_01")
    scheduler.advance(300)
    session = controller.session
    renderer.fail_removal_of.add(session.sphere_handle)
    renderer.fail_removal_of.add(session.frustum_side_handles[1])

    target = controller.select("PIC_03")
    assert target.id == "PIC_03"
    assert len(renderer.spheres) == 1
    assert renderer.polygons == []
    errors = [m for m in log_messages if m.startswith("ERROR|")]
    assert len(errors) == 2


def test_clear_returns_to_idle_and_rearms_gating(controller, renderer, tracker, scheduler):
    tracker.update_view(0.0, 0.0, 90.0)
    controller.select("PIC_01")
    scheduler.advance(300)
    controller.clear()

    assert controller.state is HighlightState.IDLE
    assert renderer.shapes == {}
    assert not tracker.ready
    assert controller.compute_frustum() is None

    controller.select("PIC_01")
    scheduler.advance(300)
    assert controller.state is HighlightState.SELECTED
    tracker.update_view(0.0, 0.0, 90.0)
    assert controller.state is HighlightState.ACTIVE


def test_clear_when_idle_is_noop(controller, renderer):
    controller.clear()
    assert controller.state is HighlightState.IDLE
    assert renderer.removed == []


def test_point_without_position_selects_without_marker(controller, renderer, tracker, scheduler):
    target = controller.select("PIC_NOPOS")
    assert target.id == "PIC_NOPOS"
    assert renderer.spheres == []
    tracker.update_view(0.0, 0.0, 90.0)
    scheduler.advance(300)
    assert controller.state is HighlightState.ACTIVE
    assert controller.side_positions(2) == []


def test_zero_arming_delay_spawns_immediately(renderer, tracker, scheduler, road_points):
    controller = HighlightLifecycleController(
        renderer, tracker, scheduler, config=FrustumConfig(arming_delay_ms=0.0), points=road_points
    )
    tracker.update_view(0.0, 0.0, 90.0)
    controller.select("PIC_01")
    assert controller.state is HighlightState.ACTIVE
    assert scheduler.pending == 0


def test_set_points_replaces_lookup_snapshot(controller, road_points):
    controller.set_points(road_points[2:])
    assert controller.select("PIC_01") is None
    assert controller.select("pic_03").id == "PIC_03"


def test_find_point_matches_trimmed_names_and_rejects_blank(controller):
    assert controller.find_point(" pic_02\t").id == "PIC_02"
    assert controller.find_point("   ") is None
    assert controller.find_point("PIC_0") is None


def test_marker_failure_still_selects(controller, renderer, tracker, scheduler, log_messages):
    renderer.fail_add_of.add(SPHERE_NAME)

    target = controller.select("PIC_01")
    assert target.id == "PIC_01"
    assert controller.session.sphere_handle is None
    assert renderer.spheres == []
    assert any(m.startswith("ERROR|") and "PIC_01" in m for m in log_messages)

    tracker.update_view(0.0, 0.0, 90.0)
    scheduler.advance(300)
    assert controller.state is HighlightState.ACTIVE
    assert len(renderer.polygons) == 4


def test_side_failure_rolls_back_and_retries(controller, renderer, tracker, scheduler, log_messages):
    renderer.fail_add_of.add(SIDE_NAME.format(2))
    tracker.update_view(0.0, 0.0, 90.0)
    controller.select("PIC_01")
    scheduler.advance(300)

    assert controller.state is HighlightState.SELECTED
    assert renderer.polygons == []
    assert len(renderer.removed) == 2
    assert any(m.startswith("ERROR|") and "frustum side 2" in m for m in log_messages)

    renderer.fail_add_of.clear()
    tracker.update_view(5.0, 0.0, 90.0)
    assert controller.state is HighlightState.ACTIVE
    assert len(renderer.polygons) == 4
