"""
模块与收藏接口测试

- 管理员 CRUD、排序、初始化内置目录
- 按 tier 过滤的模块列表
- 收藏（幂等）
"""

import pytest

from app.services.modules import SEED_MODULES


async def _create_module(client, headers, slug: str, tier: str = "MVP", **extra) -> dict:
    body = {"name": slug.title(), "slug": slug, "tier": tier, **extra}
    resp = await client.post("/modules", json=body, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


class TestModuleAdmin:
    """测试管理员模块管理"""

    @pytest.mark.asyncio
    async def test_create_module(self, client, admin_headers):
        module = await _create_module(
            client, admin_headers, "hook-polisher", systemPrompt="Polish hooks.", temperature=0.3,
        )
        assert module["slug"] == "hook-polisher"
        assert module["systemPrompt"] == "Polish hooks."
        assert module["temperature"] == 0.3
        assert module["isActive"] is True
        assert module["isRecommended"] is False

    @pytest.mark.asyncio
    async def test_duplicate_slug(self, client, admin_headers):
        await _create_module(client, admin_headers, "hook-polisher")
        resp = await client.post(
            "/modules",
            json={"name": "Another", "slug": "hook-polisher", "tier": "MVP"},
            headers=admin_headers,
        )
        assert resp.status_code == 409
        assert resp.json()["code"] == "MODULE_EXISTS"

    @pytest.mark.asyncio
    async def test_invalid_tier(self, client, admin_headers):
        resp = await client.post(
            "/modules",
            json={"name": "X", "slug": "x", "tier": "Gold"},
            headers=admin_headers,
        )
        assert resp.status_code == 400
        assert resp.json()["code"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_create_requires_admin(self, client, user_headers):
        resp = await client.post("/modules", json={"name": "X", "slug": "x", "tier": "MVP"}, headers=user_headers)
        assert resp.status_code == 403

    @pytest.mark.asyncio
    async def test_update_and_get(self, client, admin_headers):
        module = await _create_module(client, admin_headers, "blog-post")
        resp = await client.patch(
            f"/modules/{module['id']}",
            json={"emptyStateText": "Ask me anything", "isRecommended": True},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        assert resp.json()["emptyStateText"] == "Ask me anything"

        by_id = await client.get(f"/modules/{module['id']}")
        assert by_id.json()["isRecommended"] is True
        by_slug = await client.get("/modules/slug/blog-post")
        assert by_slug.json()["id"] == module["id"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("field", ["isActive", "position", "isRecommended", "temperature", "name", "tier"])
    async def test_update_rejects_null_for_required_fields(self, client, admin_headers, field):
        module = await _create_module(client, admin_headers, "blog-post")
        resp = await client.patch(f"/modules/{module['id']}", json={field: None}, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json()["code"] == "VALIDATION_ERROR"

        unchanged = (await client.get(f"/modules/{module['id']}")).json()
        assert unchanged["isActive"] is True
        assert unchanged["temperature"] == 0.7

    @pytest.mark.asyncio
    async def test_update_allows_null_for_optional_fields(self, client, admin_headers):
        module = await _create_module(client, admin_headers, "blog-post", systemPrompt="Write blogs.")
        resp = await client.patch(f"/modules/{module['id']}", json={"systemPrompt": None}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json()["systemPrompt"] is None

    @pytest.mark.asyncio
    async def test_get_unknown(self, client):
        resp = await client.get("/modules/slug/missing")
        assert resp.status_code == 404
        assert resp.json() == {"detail": "Module with slug missing not found", "code": "MODULE_NOT_FOUND"}

        resp = await client.get("/modules/abc")
        assert resp.json()["detail"] == "Module with ID abc not found"

    @pytest.mark.asyncio
    async def test_delete(self, client, admin_headers):
        module = await _create_module(client, admin_headers, "blog-post")
        resp = await client.delete(f"/modules/{module['id']}", headers=admin_headers)
        assert resp.status_code == 200
        assert (await client.get(f"/modules/{module['id']}")).status_code == 404

    @pytest.mark.asyncio
    async def test_positions_and_all_ordering(self, client, admin_headers):
        a = await _create_module(client, admin_headers, "a-module", position=0)
        b = await _create_module(client, admin_headers, "b-module", position=1)

        resp = await client.post(
            "/modules/positions",
            json=[{"id": a["id"], "position": 5}, {"id": b["id"], "position": 2}],
            headers=admin_headers,
        )
        assert resp.status_code == 200

        resp = await client.get("/modules/all", headers=admin_headers)
        assert [m["slug"] for m in resp.json()] == ["b-module", "a-module"]

    @pytest.mark.asyncio
    async def test_seed(self, client, admin_headers):
        await _create_module(client, admin_headers, "custom-module")
        resp = await client.post("/modules/seed", headers=admin_headers)
        assert resp.status_code == 200
        modules = resp.json()
        assert len(modules) == len(SEED_MODULES)
        assert [m["slug"] for m in modules] == [s[0] for s in SEED_MODULES]
        assert [m["position"] for m in modules] == list(range(len(SEED_MODULES)))

    @pytest.mark.asyncio
    async def test_seed_replaces_catalog_and_clears_favorites(self, client, admin_headers):
        first = (await client.post("/modules/seed", headers=admin_headers)).json()
        await _create_module(client, admin_headers, "custom-module")
        fav = await client.post(f"/modules/{first[0]['id']}/favorite", headers=admin_headers)
        assert fav.status_code == 200

        resp = await client.post("/modules/seed", headers=admin_headers)
        assert resp.status_code == 200
        second = resp.json()
        assert "custom-module" not in [m["slug"] for m in second]
        assert len(second) == len(SEED_MODULES)
        # 每次重新写入，id 会变
        assert {m["id"] for m in first}.isdisjoint(m["id"] for m in second)

        favorites = await client.get("/modules/favorites/list", headers=admin_headers)
        assert favorites.json() == []


class TestTierFiltering:
    """测试按 tier 过滤"""

    @pytest.mark.asyncio
    async def test_mvp_user_sees_mvp_only(self, client, admin_headers, user_headers):
        await client.post("/modules/seed", headers=admin_headers)
        resp = await client.get("/modules", headers=user_headers)
        assert resp.status_code == 200
        tiers = {m["tier"] for m in resp.json()}
        assert tiers == {"MVP"}
        assert len(resp.json()) == sum(1 for s in SEED_MODULES if s[2] == "MVP")

    @pytest.mark.asyncio
    async def test_pro_user_sees_all_active(self, client, admin_headers):
        await client.post("/modules/seed", headers=admin_headers)
        all_modules = (await client.get("/modules/all", headers=admin_headers)).json()
        await client.patch(f"/modules/{all_modules[0]['id']}", json={"isActive": False}, headers=admin_headers)

        resp = await client.get("/modules", headers=admin_headers)
        assert len(resp.json()) == len(SEED_MODULES) - 1

    @pytest.mark.asyncio
    async def test_basic_tier_sees_nothing(self, client, admin_headers):
        await client.post("/modules/seed", headers=admin_headers)
        await client.post(
            "/users",
            json={"email": "basic@example.com", "password": "secret1", "tier": "basic"},
            headers=admin_headers,
        )
        login = await client.post("/auth/login", json={"email": "basic@example.com", "password": "secret1"})
        headers = {"Authorization": f"Bearer {login.json()['access_token']}"}

        resp = await client.get("/modules", headers=headers)
        assert resp.status_code == 200
        assert resp.json() == []

    @pytest.mark.asyncio
    async def test_requires_login(self, client):
        resp = await client.get("/modules")
        assert resp.status_code == 401


class TestFavorites:
    """测试收藏"""

    @pytest.mark.asyncio
    async def test_add_list_remove(self, client, admin_headers, user_headers):
        module = await _create_module(client, admin_headers, "blog-post")

        first = await client.post(f"/modules/{module['id']}/favorite", headers=user_headers)
        second = await client.post(f"/modules/{module['id']}/favorite", headers=user_headers)
        assert first.status_code == 200
        assert first.json()["id"] == second.json()["id"]
        assert first.json()["moduleId"] == module["id"]

        resp = await client.get("/modules/favorites/list", headers=user_headers)
        assert resp.json() == [module["id"]]

        listing = await client.get("/modules", headers=user_headers)
        assert listing.json()[0]["isFavorite"] is True

        resp = await client.delete(f"/modules/{module['id']}/favorite", headers=user_headers)
        assert resp.status_code == 200
        resp = await client.get("/modules/favorites/list", headers=user_headers)
        assert resp.json() == []

    @pytest.mark.asyncio
    async def test_favorite_unknown_module(self, client, user_headers):
        resp = await client.post("/modules/missing/favorite", headers=user_headers)
        assert resp.status_code == 404
        assert resp.json()["code"] == "MODULE_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_favorites_are_per_user(self, client, admin_headers, user_headers, other_headers):
        module = await _create_module(client, admin_headers, "blog-post")
        await client.post(f"/modules/{module['id']}/favorite", headers=user_headers)

        resp = await client.get("/modules/favorites/list", headers=other_headers)
        assert resp.json() == []
