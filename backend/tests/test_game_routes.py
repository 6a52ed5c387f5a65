"""
Route tests for games: public reads, moderator edits, roster changes and
admin removal.
"""

import pytest

from backend.database.models import Game, GameMode, GameStatus
from backend.tests.factories import auth_headers, create_schedule, create_user


async def _activate(client, moderator, session_maker) -> dict:
    schedule_id = await create_schedule(session_maker, title="Route game")
    response = await client.post(f"/api/schedules/{schedule_id}/activate", headers=auth_headers(moderator))
    return response.json()["game"]


async def _insert_games(session_maker, season: int, count: int) -> None:
    async with session_maker() as session:
        session.add_all(
            [
                Game(season=season, mode=GameMode.CLASSIC, status=GameStatus.ENDED, storage={"title": f"G{i}"})
                for i in range(count)
            ]
        )
        await session.commit()


class TestReads:
    """Public game reads."""

    @pytest.mark.asyncio
    async def test_no_games(self, client):
        assert (await client.get("/api/games")).json() == []
        latest = await client.get("/api/games/latest")
        assert latest.status_code == 404
        assert latest.json()["detail"] == "Currently no games exist."
        assert (await client.get("/api/games/active")).status_code == 404

    @pytest.mark.asyncio
    async def test_unknown_game(self, client):
        response = await client.get("/api/games/31337")
        assert response.status_code == 404
        assert response.json()["code"] == "GAME_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_active_game(self, client, moderator, session_maker):
        game = await _activate(client, moderator, session_maker)

        response = await client.get("/api/games/active")

        assert response.status_code == 200
        assert response.json()["id"] == game["id"]
        assert response.json()["storage"]["title"] == "Route game"

    @pytest.mark.asyncio
    async def test_season_paging(self, client, session_maker):
        await _insert_games(session_maker, season=2, count=3)

        page = await client.get("/api/games/season/2", params={"first": 2})
        assert page.status_code == 200
        assert len(page.json()["data"]) == 2
        assert page.json()["pagination"] == {"before": None, "after": "2"}

        rest = await client.get("/api/games/season/2", params={"first": 2, "after": 2})
        assert len(rest.json()["data"]) == 1
        assert rest.json()["pagination"]["after"] is None

        ended = await client.get("/api/games/season/2", params={"status": "ended"})
        assert len(ended.json()["data"]) == 3

    @pytest.mark.asyncio
    async def test_season_page_size_is_clamped(self, client, session_maker):
        await _insert_games(session_maker, season=2, count=3)

        large = await client.get("/api/games/season/2", params={"first": 500})
        assert large.status_code == 200
        assert len(large.json()["data"]) == 3

        small = await client.get("/api/games/season/2", params={"first": 0})
        assert small.status_code == 200
        assert len(small.json()["data"]) == 1

    @pytest.mark.asyncio
    async def test_season_validation(self, client):
        assert (await client.get("/api/games/season/9")).status_code == 422
        assert (await client.get("/api/games/season/2", params={"status": "later"})).status_code == 400


class TestModeration:
    """Moderator and admin game changes."""

    @pytest.mark.asyncio
    async def test_update_game(self, client, moderator, session_maker):
        game = await _activate(client, moderator, session_maker)

        response = await client.patch(
            f"/api/games/{game['id']}",
            json={"title": "Renamed", "videoUrl": "https://videos.example.com/42"},
            headers=auth_headers(moderator),
        )

        assert response.status_code == 200
        assert response.json()["storage"]["title"] == "Renamed"
        assert response.json()["video_url"] == "https://videos.example.com/42"

    @pytest.mark.asyncio
    async def test_update_rejects_unknown_fields(self, client, moderator, session_maker):
        game = await _activate(client, moderator, session_maker)

        response = await client.patch(
            f"/api/games/{game['id']}", json={"winner": 1}, headers=auth_headers(moderator)
        )

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_update_rejects_renamed_team_keys(self, client, moderator, session_maker):
        game = await _activate(client, moderator, session_maker)

        response = await client.patch(
            f"/api/games/{game['id']}",
            json={"teams": {"blue": {"id": 0, "name": "blue"}, "red": {"id": 1, "name": "red"}}},
            headers=auth_headers(moderator),
        )
        assert response.status_code == 422

        ended = await client.post(f"/api/games/{game['id']}/end", headers=auth_headers(moderator))
        assert ended.status_code == 200
        assert ended.json()["storage"]["meta"]["winningTeam"] in (0, 1)

    @pytest.mark.asyncio
    async def test_update_rejects_empty_or_mismatched_teams(self, client, moderator, session_maker):
        game = await _activate(client, moderator, session_maker)

        empty = await client.patch(
            f"/api/games/{game['id']}", json={"teams": {}}, headers=auth_headers(moderator)
        )
        assert empty.status_code == 422

        swapped = await client.patch(
            f"/api/games/{game['id']}",
            json={"teams": {"0": {"id": 1, "name": "blue"}, "1": {"id": 0, "name": "red"}}},
            headers=auth_headers(moderator),
        )
        assert swapped.status_code == 422

        stored = await client.get(f"/api/games/{game['id']}")
        assert sorted(stored.json()["storage"]["teams"]) == ["0", "1"]

    @pytest.mark.asyncio
    async def test_update_requires_moderator(self, client, regular_user):
        response = await client.patch("/api/games/1", json={"title": "x"}, headers=auth_headers(regular_user))
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_end_game(self, client, moderator, session_maker):
        game = await _activate(client, moderator, session_maker)

        ended = await client.post(f"/api/games/{game['id']}/end", headers=auth_headers(moderator))
        assert ended.status_code == 200
        assert ended.json()["status"] == "ENDED"
        assert "meta" in ended.json()["storage"]

        again = await client.post(f"/api/games/{game['id']}/end", headers=auth_headers(moderator))
        assert again.status_code == 400
        assert again.json()["detail"] == "Game cannot be ended since its not in a active state."

    @pytest.mark.asyncio
    async def test_activate_game(self, client, moderator, session_maker):
        await _insert_games(session_maker, season=3, count=1)
        game_id = (await client.get("/api/games")).json()[0]["id"]

        response = await client.post(f"/api/games/{game_id}/activate", headers=auth_headers(moderator))

        assert response.status_code == 200
        assert response.json()["status"] == "ACTIVE"

    @pytest.mark.asyncio
    async def test_auto_assign_without_applicants(self, client, moderator, session_maker):
        game = await _activate(client, moderator, session_maker)

        response = await client.post(f"/api/games/{game['id']}/auto-assign", headers=auth_headers(moderator))

        assert response.status_code == 400
        assert response.json()["code"] == "NOT_ENOUGH_APPLICANTS"

    @pytest.mark.asyncio
    async def test_remove_requires_admin(self, client, moderator, admin, session_maker):
        game = await _activate(client, moderator, session_maker)

        forbidden = await client.delete(f"/api/games/{game['id']}", headers=auth_headers(moderator))
        assert forbidden.status_code == 403

        removed = await client.delete(f"/api/games/{game['id']}", headers=auth_headers(admin))
        assert removed.status_code == 200
        assert removed.json()["id"] == game["id"]
        assert (await client.get(f"/api/games/{game['id']}")).status_code == 404


class TestPlayers:
    """Manual roster changes."""

    @pytest.mark.asyncio
    async def test_add_and_remove_player(self, client, moderator, session_maker):
        game = await _activate(client, moderator, session_maker)
        player = await create_user(session_maker, "rosterRoute")
        url = f"/api/games/{game['id']}/player"

        added = await client.post(
            url, json={"user_id": player["id"], "team": 0, "language": "css"}, headers=auth_headers(moderator)
        )
        assert added.status_code == 200
        assert added.json()["storage"]["editors"]["1"]["player"] == player["id"]

        detailed = await client.get(f"/api/games/{game['id']}", params={"players": "true"})
        assert detailed.json()["storage"]["players"][str(player["id"])]["username"] == "rosterRoute"

        duplicate = await client.post(url, json={"user_id": player["id"], "team": 1}, headers=auth_headers(moderator))
        assert duplicate.status_code == 409

        removed = await client.request(
            "DELETE", url, json={"user_id": player["id"]}, headers=auth_headers(moderator)
        )
        assert removed.status_code == 200
        assert removed.json()["storage"]["players"] == {}

    @pytest.mark.asyncio
    async def test_add_unknown_user(self, client, moderator, session_maker):
        game = await _activate(client, moderator, session_maker)

        response = await client.post(
            f"/api/games/{game['id']}/player", json={"user_id": 999, "team": 0}, headers=auth_headers(moderator)
        )

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_invalid_team(self, client, moderator, session_maker):
        game = await _activate(client, moderator, session_maker)

        response = await client.post(
            f"/api/games/{game['id']}/player", json={"user_id": 1, "team": 5}, headers=auth_headers(moderator)
        )

        assert response.status_code == 422
