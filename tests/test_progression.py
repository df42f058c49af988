"""Tests for global parameter stepping and tracker diffs."""

from bga_tm_stats.models import ReplayLog
from bga_tm_stats.progression import classify_tracker, extract_parameter_changes, extract_tracker_changes
from bga_tm_stats.records import TrackerType
from replay_builders import ME, OPP, make_document, make_move, make_state


def replay_of(moves):
    return ReplayLog.from_dict(make_document(moves))


class TestParameterChanges:

    def test_temperature_steps_by_two(self):
        replay = replay_of([
            make_move(1, state=make_state(4, temperature=-4)),
            make_move(2, player_id=OPP, state=make_state(5, temperature=2)),
        ])
        changes = extract_parameter_changes(replay)
        assert [(c.parameter, c.generation, c.increased_to, c.increased_by) for c in changes] == [
            ("temperature", 5, -2, int(OPP)),
            ("temperature", 5, 0, int(OPP)),
            ("temperature", 5, 2, int(OPP)),
        ]

    def test_unchanged_or_lower_values_emit_nothing(self):
        replay = replay_of([
            make_move(1, state=make_state(4, temperature=0, oxygen=5)),
            make_move(2, state=make_state(4, temperature=0, oxygen=5)),
            make_move(3, state=make_state(4, temperature=-2, oxygen=4)),
        ])
        assert extract_parameter_changes(replay) == []

    def test_oxygen_and_oceans_step_by_one(self):
        replay = replay_of([
            make_move(1, state=make_state(2, oxygen=3, oceans=1)),
            make_move(2, state=make_state(2, oxygen=5, oceans=2)),
        ])
        changes = extract_parameter_changes(replay)
        assert [(c.parameter, c.increased_to) for c in changes] == [
            ("oxygen", 4), ("oxygen", 5), ("oceans", 2),
        ]

    def test_last_value_updates_even_without_generation(self):
        replay = replay_of([
            make_move(1, state=make_state(3, oceans=1)),
            make_move(2, state={"oceans": 3}),
            make_move(3, state=make_state(3, oceans=4)),
        ])
        changes = extract_parameter_changes(replay)
        assert [(c.parameter, c.increased_to) for c in changes] == [("oceans", 4)]

    def test_unparsable_actor_still_recorded(self):
        replay = replay_of([
            make_move(1, state=make_state(1, oxygen=0)),
            make_move(2, player_id="system", state=make_state(1, oxygen=1)),
        ])
        changes = extract_parameter_changes(replay)
        assert len(changes) == 1
        assert changes[0].increased_by is None


class TestTrackerChanges:

    def test_classify_tracker(self):
        assert classify_tracker("Plant Production") == TrackerType.PRODUCTION
        assert classify_tracker("Count of Space tags") == TrackerType.TAG
        assert classify_tracker("MegaCredits") == TrackerType.RESOURCE
        assert classify_tracker("Count of cards in hand") == TrackerType.RESOURCE

    def test_first_sighting_and_changes_only(self):
        replay = replay_of([
            make_move(1, state=make_state(1, player_trackers={ME: {"Heat": 0, "Plant Production": 1}})),
            make_move(2, state=make_state(1, player_trackers={ME: {"Heat": 0, "Plant Production": 2}})),
            make_move(3, state=make_state(2, player_trackers={ME: {"Heat": 4, "Plant Production": 2}})),
        ])
        changes = extract_tracker_changes(replay)
        assert [(c.tracker, c.move_number, c.changed_to) for c in changes] == [
            ("Heat", 1, 0),
            ("Plant Production", 1, 1),
            ("Plant Production", 2, 2),
            ("Heat", 3, 4),
        ]
        assert changes[1].tracker_type == TrackerType.PRODUCTION
        assert changes[3].generation == 2

    def test_moves_ordered_by_move_number(self):
        replay = replay_of([
            make_move(2, state=make_state(1, player_trackers={ME: {"Heat": 5}})),
            make_move(1, state=make_state(1, player_trackers={ME: {"Heat": 3}})),
        ])
        changes = extract_tracker_changes(replay)
        assert [(c.move_number, c.changed_to) for c in changes] == [(1, 3), (2, 5)]

    def test_skips_unknown_generation_and_bad_players(self):
        replay = replay_of([
            make_move(1, state={"player_trackers": {ME: {"Heat": 1}}}),
            make_move(2, state=make_state(1, player_trackers={"ghost": {"Heat": 9}, ME: {"Heat": 2, "Label": "x"}})),
        ])
        changes = extract_tracker_changes(replay)
        assert [(c.player_id, c.tracker, c.changed_to) for c in changes] == [(int(ME), "Heat", 2)]
