"""
Route tests for profiles, roles, moderator search and the health check.
"""

import pytest

from backend.tests.factories import auth_headers, create_user


class TestProfiles:
    """Profiles are readable by owner or moderator and writable by owner or admin."""

    @pytest.mark.asyncio
    async def test_owner_reads_and_updates(self, client, regular_user):
        url = f"/api/users/{regular_user['id']}/profile"

        read = await client.get(url, headers=auth_headers(regular_user))
        assert read.status_code == 200
        assert read.json()["skills"] == {"html": 1, "css": 1, "js": 1}

        updated = await client.patch(
            url, json={"about": "Frontend dev", "skills": {"html": 4, "css": 5, "js": 2}},
            headers=auth_headers(regular_user),
        )
        assert updated.status_code == 200
        assert updated.json()["about"] == "Frontend dev"
        assert updated.json()["skills"]["css"] == 5

    @pytest.mark.asyncio
    async def test_other_users_cannot_read(self, client, regular_user, session_maker):
        other = await create_user(session_maker, "nosy")

        response = await client.get(f"/api/users/{regular_user['id']}/profile", headers=auth_headers(other))

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_moderator_reads_but_cannot_write(self, client, regular_user, moderator):
        url = f"/api/users/{regular_user['id']}/profile"

        assert (await client.get(url, headers=auth_headers(moderator))).status_code == 200
        response = await client.patch(url, json={"city": "Elsewhere"}, headers=auth_headers(moderator))
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_admin_writes(self, client, regular_user, admin):
        response = await client.patch(
            f"/api/users/{regular_user['id']}/profile", json={"city": "Oslo"}, headers=auth_headers(admin)
        )
        assert response.status_code == 200
        assert response.json()["city"] == "Oslo"

    @pytest.mark.asyncio
    async def test_empty_update(self, client, regular_user):
        response = await client.patch(
            f"/api/users/{regular_user['id']}/profile", json={}, headers=auth_headers(regular_user)
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_profile_of_unknown_user(self, client, moderator):
        response = await client.get("/api/users/9999/profile", headers=auth_headers(moderator))
        assert response.status_code == 404


class TestRoles:
    """Role changes are admin-only."""

    @pytest.mark.asyncio
    async def test_admin_promotes(self, client, regular_user, admin):
        response = await client.patch(
            f"/api/users/{regular_user['id']}/role", json={"role": "MODERATOR"}, headers=auth_headers(admin)
        )
        assert response.status_code == 200
        assert response.json()["role"] == "MODERATOR"

    @pytest.mark.asyncio
    async def test_moderator_cannot_promote(self, client, regular_user, moderator):
        response = await client.patch(
            f"/api/users/{regular_user['id']}/role", json={"role": "ADMIN"}, headers=auth_headers(moderator)
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_unknown_role(self, client, regular_user, admin):
        response = await client.patch(
            f"/api/users/{regular_user['id']}/role", json={"role": "OWNER"}, headers=auth_headers(admin)
        )
        assert response.status_code == 422


class TestSearch:
    """Moderator user search."""

    @pytest.mark.asyncio
    async def test_search_by_username(self, client, moderator, regular_user):
        response = await client.get(
            "/api/search/users", params={"username": "PLAY"}, headers=auth_headers(moderator)
        )
        assert response.status_code == 200
        assert [u["username"] for u in response.json()] == ["player1"]
        assert set(response.json()[0]) == {"id", "username", "email", "role"}

    @pytest.mark.asyncio
    async def test_search_requires_a_term(self, client, moderator):
        response = await client.get("/api/search/users", headers=auth_headers(moderator))
        assert response.status_code == 400
        assert response.json()["code"] == "EMPTY_SEARCH"

    @pytest.mark.asyncio
    async def test_search_requires_moderator(self, client, regular_user):
        response = await client.get(
            "/api/search/users", params={"username": "a"}, headers=auth_headers(regular_user)
        )
        assert response.status_code == 403


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/api/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "database": "connected"}
