"""Tests for the replay log model built from the scraper's JSON documents."""

import json

import pytest

from bga_tm_stats.models import (
    ReplayLog, Move, MalformedReplay, load_replay_log, parse_player_id, to_int,
)
from replay_builders import ME, OPP, make_document, make_move, make_state


class TestIdentifiers:

    def test_parse_player_id_accepts_numeric_strings(self):
        assert parse_player_id("91334215") == 91334215
        assert parse_player_id(" 42 ") == 42
        assert parse_player_id(7) == 7

    def test_parse_player_id_rejects_non_numeric(self):
        assert parse_player_id("abc") is None
        assert parse_player_id(None) is None
        assert parse_player_id(True) is None

    def test_to_int_is_lenient(self):
        assert to_int("12") == 12
        assert to_int(3.0) == 3
        assert to_int("n/a") is None


class TestReplayLog:

    def test_non_numeric_replay_id_is_fatal(self):
        with pytest.raises(MalformedReplay):
            ReplayLog.from_dict(make_document([], replay_id="table-abc"))

    def test_non_object_document_is_fatal(self):
        with pytest.raises(MalformedReplay):
            ReplayLog.from_dict(["not", "a", "document"])

    def test_perspective_only_checked_when_required(self):
        replay = ReplayLog.from_dict(make_document([], perspective="someone"))
        assert replay.table_id == 670153426
        assert replay.perspective_player_id is None
        with pytest.raises(MalformedReplay):
            replay.require_perspective()

    def test_moves_keep_document_order(self):
        moves = [make_move(3), make_move(1), make_move(2)]
        replay = ReplayLog.from_dict(make_document(moves))
        assert [m.move_number for m in replay.moves] == [3, 1, 2]

    def test_final_state_is_last_moves_snapshot(self):
        moves = [make_move(1, generation=1), make_move(2, generation=4)]
        replay = ReplayLog.from_dict(make_document(moves))
        assert replay.final_state.generation == 4

    def test_final_state_of_empty_log(self):
        replay = ReplayLog.from_dict(make_document([]))
        assert replay.final_state is None

    def test_generation_of_move(self):
        moves = [make_move(10, generation=2), make_move(11, state={})]
        replay = ReplayLog.from_dict(make_document(moves))
        assert replay.generation_of_move(10) == 2
        assert replay.generation_of_move(11) == 0
        assert replay.generation_of_move(99) == 0
        assert replay.generation_of_move(None) == 0

    def test_player_lookup_helpers(self):
        replay = ReplayLog.from_dict(make_document([]))
        assert replay.player_id_by_name() == {"Alice": int(ME), "Bob": int(OPP)}
        assert replay.corporation_names() == {"Ecoline", "Helion"}

    def test_load_replay_log(self, tmp_path):
        path = tmp_path / "game_670153426.json"
        path.write_text(json.dumps(make_document([make_move(1)])), encoding="utf-8")
        replay = load_replay_log(str(path))
        assert replay.table_id == 670153426
        assert len(replay.moves) == 1


class TestMove:

    def test_phrases_split_on_pipes(self):
        move = Move.from_dict(make_move(1, "You draw Birds |  | Alice plays card Fish "))
        assert move.phrases == ["You draw Birds", "Alice plays card Fish"]

    def test_unparsable_actor(self):
        move = Move.from_dict(make_move(1, player_id="system"))
        assert move.actor_id is None

    def test_card_drafted_single_name_or_list(self):
        single = Move.from_dict(make_move(1, card_drafted="Birds"))
        many = Move.from_dict(make_move(2, card_drafted=["Birds", "Fish"]))
        assert single.card_drafted == ["Birds"]
        assert many.card_drafted == ["Birds", "Fish"]

    def test_missing_generation(self):
        move = Move.from_dict(make_move(1, state={"temperature": -30}))
        assert move.generation is None
        assert move.game_state.temperature == -30

    def test_vp_helpers(self):
        state = make_state(5, player_vp={
            ME: {"details": {
                "cards": {"Birds": {"vp": 3}},
                "cities": {"Tharsis Hex 5,3 (5,3)": {"vp": 2}},
                "greeneries": {"Tharsis Hex 4,4 (4,4)": {"vp": 1}},
                "awards": {"Banker": {"place": 1, "counter": 25}},
            }},
        })
        move = Move.from_dict(make_move(1, state=state))
        gs = move.game_state
        assert gs.card_vp(ME) == {"Birds": 3}
        assert gs.city_vp(ME) == {"Tharsis Hex 5,3 (5,3)": 2}
        assert gs.greenery_locations(ME) == ["Tharsis Hex 4,4 (4,4)"]
        assert gs.award_details(ME)["Banker"]["place"] == 1
        assert gs.card_vp(OPP) == {}
