"""Builders for small replay log documents in the scraper's JSON shape."""

import copy

ME = "100"
OPP = "200"
ME_NAME = "Alice"
OPP_NAME = "Bob"
TABLE_ID = "670153426"


def make_state(generation, **fields):
    """Game state snapshot; only the given keys are present."""
    state = {"generation": generation}
    state.update(fields)
    return state


def make_move(move_number, description="", player_id=ME, generation=1,
              action_type=None, state=None, **fields):
    """One move dict; extra keyword arguments become structured move fields."""
    move = {
        "move_number": move_number,
        "player_id": player_id,
        "player_name": ME_NAME if player_id == ME else OPP_NAME,
        "action_type": action_type,
        "description": description,
        "timestamp": None,
    }
    move.update(fields)
    move["game_state"] = state if state is not None else make_state(generation)
    return move


def make_player(player_id, name, corporation=None, **fields):
    player = {
        "player_id": player_id,
        "player_name": name,
        "corporation": corporation,
        "final_vp": None,
        "final_tr": None,
        "vp_breakdown": {},
        "cards_played": [],
        "starting_hand": {"corporations": [], "preludes": [], "project_cards": []},
    }
    player.update(fields)
    return player


def default_players():
    return {
        ME: make_player(ME, ME_NAME, corporation="Ecoline"),
        OPP: make_player(OPP, OPP_NAME, corporation="Helion"),
    }


def make_document(moves, players=None, replay_id=TABLE_ID, perspective=ME, **fields):
    document = {
        "replay_id": replay_id,
        "player_perspective": perspective,
        "game_duration": None,
        "generations": None,
        "winner": None,
        "players": copy.deepcopy(players) if players is not None else default_players(),
        "moves": moves,
    }
    document.update(fields)
    return document


def vp_entry(cards=None, cities=None, greeneries=None, awards=None, milestones=None, total=None):
    """A player_vp entry with the given detail categories."""
    return {
        "total": total,
        "total_details": {},
        "details": {
            "cards": cards or {},
            "cities": cities or {},
            "greeneries": greeneries or {},
            "awards": awards or {},
            "milestones": milestones or {},
        },
    }


def card_by_name(records, card, player_id=int(ME)):
    """The single CardRecord for (player, card), or None."""
    matches = [r for r in records if r.card == card and r.player_id == player_id]
    assert len(matches) <= 1
    return matches[0] if matches else None
