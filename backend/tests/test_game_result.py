"""
Unit tests for scoring ended games and for the stored game document.
"""
import pytest
from pydantic import ValidationError

from backend.models.schemas import GameStorage, GameUpdate, migrate_storage
from backend.services.game_service import compute_game_result

OBJECTIVES = {
    "1": {"id": 1, "description": "Header"},
    "2": {"id": 2, "description": "Footer"},
    "3": {"id": 3, "description": "Animation", "isBonus": True},
}


def _storage(blue_objectives=None, red_objectives=None, blue_votes=None, red_votes=None):
    return GameStorage.model_validate(
        {
            "version": 1,
            "title": "T",
            "mode": "Classic",
            "objectives": OBJECTIVES,
            "teams": {
                "0": {
                    "id": 0,
                    "name": "blue",
                    "objectives": blue_objectives or {},
                    "votes": blue_votes or {},
                },
                "1": {
                    "id": 1,
                    "name": "red",
                    "objectives": red_objectives or {},
                    "votes": red_votes or {},
                },
            },
        }
    )


class TestComputeGameResult:
    """Tests for objective, vote and tie scoring."""

    def test_more_objectives_wins(self):
        meta = compute_game_result(
            _storage(
                blue_objectives={"1": "complete"},
                red_objectives={"1": "complete", "2": "complete"},
            )
        )
        assert meta.winning_team == 1
        assert meta.tie is False
        assert [score.objectives for score in meta.team_scores] == [1, 2]

    def test_bonus_only_counts_after_regular_objectives(self):
        meta = compute_game_result(
            _storage(
                blue_objectives={"1": "complete", "3": "complete"},
                red_objectives={"1": "complete", "2": "complete", "3": "complete"},
            )
        )
        assert [score.objectives for score in meta.team_scores] == [1, 3]

    def test_votes_award_one_point_to_the_leader(self):
        meta = compute_game_result(
            _storage(
                blue_votes={"ui": 10, "ux": 3},
                red_votes={"ui": 4, "ux": 3},
            )
        )
        blue, red = meta.team_scores
        assert (blue.ui, blue.ux) == (1, 0)
        assert (red.ui, red.ux) == (0, 0)
        assert meta.winning_team == 0

    def test_equal_totals_broken_by_tie_flag(self):
        meta = compute_game_result(
            _storage(
                blue_objectives={"1": "complete"},
                red_objectives={"1": "complete"},
                red_votes={"tie": True},
            )
        )
        assert meta.winning_team == 1
        assert meta.tie is False

    def test_unbroken_tie(self):
        meta = compute_game_result(_storage())
        assert meta.tie is True
        assert meta.winning_team == 0

    def test_both_flagged_is_still_a_tie(self):
        meta = compute_game_result(
            _storage(blue_votes={"tie": True}, red_votes={"tie": True})
        )
        assert meta.tie is True

    def test_serialized_with_camel_case_keys(self):
        document = compute_game_result(_storage(red_objectives={"1": "complete"})).to_document()
        assert document["winningTeam"] == 1
        assert document["teamScores"][1]["objectives"] == 1


class TestMigrateStorage:
    """Tests for upgrading stored game documents."""

    def test_legacy_document_gets_defaults(self):
        storage = migrate_storage({"title": "Old game", "mode": "Blitz"})

        assert storage.version == 1
        assert sorted(storage.teams) == ["0", "1"]
        assert storage.teams["0"].name == "blue"
        assert storage.players == {}
        assert storage.editors == {}

    def test_legacy_integer_keys_become_strings(self):
        storage = migrate_storage(
            {"title": "Old", "players": {5: {"id": 5, "username": "ann", "team": 1}}}
        )
        assert "5" in storage.players

    def test_empty_document(self):
        assert migrate_storage(None).title == ""

    def test_current_document_round_trips(self):
        document = _storage(blue_objectives={"1": "complete"}).to_document()
        assert migrate_storage(document).to_document() == document

    def test_new_document_has_full_team_documents(self):
        teams = GameStorage().to_document()["teams"]

        assert teams["0"] == {"id": 0, "name": "blue", "objectives": {}, "votes": {"ui": 0, "ux": 0, "tie": False}}
        assert teams["1"]["name"] == "red"
        assert teams["1"]["votes"] == {"ui": 0, "ux": 0, "tie": False}

    def test_stored_teams_must_be_blue_and_red(self):
        with pytest.raises(ValidationError):
            migrate_storage({"version": 1, "teams": {"0": {"id": 0, "name": "blue"}}})


class TestGameUpdateTeams:
    """Tests for the team check on game patches."""

    def test_blue_and_red_accepted(self):
        patch = GameUpdate.model_validate(
            {"teams": {"0": {"id": 0, "name": "blue"}, "1": {"id": 1, "name": "red"}}}
        )
        assert sorted(patch.teams) == ["0", "1"]

    def test_other_keys_rejected(self):
        with pytest.raises(ValidationError):
            GameUpdate.model_validate(
                {"teams": {"blue": {"id": 0, "name": "blue"}, "red": {"id": 1, "name": "red"}}}
            )

    def test_missing_team_rejected(self):
        with pytest.raises(ValidationError):
            GameUpdate.model_validate({"teams": {"0": {"id": 0, "name": "blue"}}})

    def test_id_must_match_key(self):
        with pytest.raises(ValidationError):
            GameUpdate.model_validate(
                {"teams": {"0": {"id": 0, "name": "blue"}, "1": {"id": 0, "name": "red"}}}
            )

    def test_teams_omitted(self):
        assert GameUpdate.model_validate({"title": "x"}).teams is None
