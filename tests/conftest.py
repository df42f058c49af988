import pytest

from bga_tm_stats.parser import GameLogParser
from replay_builders import (
    ME, OPP, ME_NAME, OPP_NAME, make_document, make_move, make_player, make_state, vp_entry,
)


def _params(generation, temperature=-28, oxygen=0, oceans=0, **fields):
    return make_state(generation, temperature=temperature, oxygen=oxygen, oceans=oceans, **fields)


@pytest.fixture
def parser():
    return GameLogParser()


@pytest.fixture
def sample_document():
    """A short two-player game touching every entity type."""
    players = {
        ME: make_player(
            ME, ME_NAME, corporation="Ecoline",
            final_vp=60, final_tr=35,
            vp_breakdown={"tr": 35, "awards": 2, "milestones": 5, "cities": 0, "greeneries": 1, "cards": 2},
            cards_played=["Supply Drop", "Birds"],
            starting_hand={
                "corporations": ["Ecoline", "Helion"],
                "preludes": ["Supply Drop", "Donation"],
                "project_cards": ["Birds", "Fish", "Comet"],
            },
        ),
        OPP: make_player(
            OPP, OPP_NAME, corporation="Helion",
            final_vp=50, final_tr=30,
            vp_breakdown={"tr": 30, "awards": 5, "milestones": 0, "cities": 2, "greeneries": 0, "cards": 0},
        ),
    }

    final_state = _params(
        3, oxygen=1,
        player_trackers={ME: {"MegaCredits": 20, "Plant Production": 3, "Count of Space tags": 1}},
        player_vp={
            ME: vp_entry(
                cards={"Birds": {"vp": 2}},
                greeneries={"Tharsis Hex 4,4 (4,4)": {"vp": 1}},
                awards={"Banker": {"vp": 2, "place": 2, "counter": 20}},
                milestones={"Terraformer": {"vp": 5}},
            ),
            OPP: vp_entry(
                cities={"Tharsis Hex 5,3 (5,3)": {"vp": 2}},
                awards={"Banker": {"vp": 5, "place": 1, "counter": 25}},
            ),
        },
        milestones={"Terraformer": {"claimed_by": ME_NAME, "player_id": ME, "move_number": 4}},
        awards={"Banker": {"funded_by": OPP_NAME, "player_id": OPP, "move_number": 3}},
    )

    moves = [
        make_move(1, "You buy Birds | You buy Fish", action_type="buy_cards",
                  state=_params(1, temperature=-30)),
        make_move(2, "Alice plays card Supply Drop", action_type="play_card", card_played="Supply Drop",
                  state=_params(1, temperature=-30)),
        make_move(3, "Bob places City on Tharsis Hex 5,3 (5,3)", player_id=OPP, action_type="place_tile",
                  tile_placed="City", tile_location="Tharsis Hex 5,3 (5,3)",
                  state=_params(2)),
        make_move(4, "Alice plays card Birds", action_type="play_card", card_played="Birds",
                  state=_params(2, player_trackers={
                      ME: {"MegaCredits": 20, "Plant Production": 2, "Count of Space tags": 1},
                  })),
        make_move(5, "Alice places Forest on Tharsis Hex 4,4 (4,4)", action_type="place_tile",
                  state=final_state),
    ]

    return make_document(
        moves, players=players,
        game_duration="01:35", generations=3, winner=ME_NAME,
    )
