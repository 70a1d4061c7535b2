"""
客户档案接口测试

- CRUD 与归属校验
- 细分标签提取（mock Claude）
- 语气分析
"""

import pytest
from unittest.mock import AsyncMock, patch

from app.exceptions import LLMError
from app.infra.llm import LLMResponse
from app.services.clients import VOICE_ANALYSIS_PLACEHOLDER


async def _create_client(client, headers, **fields) -> dict:
    body = {"name": "Acme Corp", "businessInfo": "B2B SaaS for finance teams", "goals": "Grow on LinkedIn", **fields}
    resp = await client.post("/clients", json=body, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


class TestClientCrud:
    """测试客户 CRUD"""

    @pytest.mark.asyncio
    async def test_create_without_llm(self, client, user_headers, basic_user):
        created = await _create_client(
            client,
            user_headers,
            tags=["vip"],
            preferences={"tone": "friendly", "wordCount": 300},
            socialProfiles={"linkedin": "https://linkedin.com/company/acme"},
        )
        assert created["userId"] == basic_user.id
        assert created["nicheTags"] == []
        assert created["tags"] == ["vip"]
        assert created["status"] == "active"
        assert created["preferences"] == {"tone": "friendly", "wordCount": 300}
        assert created["socialProfiles"]["linkedin"].endswith("acme")
        assert created["lastActive"] is not None

    @pytest.mark.asyncio
    async def test_create_extracts_tags(self, client, user_headers):
        mock_llm = AsyncMock(return_value=LLMResponse(text='["B2B SaaS", "FinTech"]', model="m"))
        with patch("app.services.tag_extractor.anthropic_messages", mock_llm):
            created = await _create_client(client, user_headers, voice="Short and punchy.")

        assert created["nicheTags"] == ["B2B SaaS", "FinTech"]
        prompt = mock_llm.call_args.args[0][0]["content"]
        assert "Name: Acme Corp" in prompt
        assert "Voice Sample: Short and punchy." in prompt

    @pytest.mark.asyncio
    async def test_list_and_get(self, client, user_headers):
        first = await _create_client(client, user_headers, name="First")
        second = await _create_client(client, user_headers, name="Second")

        resp = await client.get("/clients", headers=user_headers)
        assert {c["id"] for c in resp.json()} == {first["id"], second["id"]}

        resp = await client.get(f"/clients/{first['id']}", headers=user_headers)
        assert resp.json()["name"] == "First"

    @pytest.mark.asyncio
    async def test_update(self, client, user_headers):
        created = await _create_client(client, user_headers)
        resp = await client.patch(
            f"/clients/{created['id']}",
            json={"company": "Acme Inc", "nicheTags": ["Manual"], "keywords": ["ledger"]},
            headers=user_headers,
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["company"] == "Acme Inc"
        assert data["nicheTags"] == ["Manual"]
        assert data["keywords"] == ["ledger"]
        assert data["name"] == "Acme Corp"

    @pytest.mark.asyncio
    async def test_delete(self, client, user_headers):
        created = await _create_client(client, user_headers)
        resp = await client.delete(f"/clients/{created['id']}", headers=user_headers)
        assert resp.status_code == 200
        resp = await client.get(f"/clients/{created['id']}", headers=user_headers)
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_other_user_cannot_access(self, client, user_headers, other_headers):
        created = await _create_client(client, user_headers)

        resp = await client.get(f"/clients/{created['id']}", headers=other_headers)
        assert resp.status_code == 404
        assert resp.json() == {
            "detail": f"Client with ID {created['id']} not found",
            "code": "CLIENT_NOT_FOUND",
        }
        assert (await client.get("/clients", headers=other_headers)).json() == []
        resp = await client.delete(f"/clients/{created['id']}", headers=other_headers)
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_name_required(self, client, user_headers):
        resp = await client.post("/clients", json={"company": "No name"}, headers=user_headers)
        assert resp.status_code == 400

    @pytest.mark.asyncio
    @pytest.mark.parametrize("field", ["status", "tags", "keywords", "nicheTags", "name"])
    async def test_update_rejects_null_for_required_fields(self, client, user_headers, field):
        created = await _create_client(client, user_headers, tags=["vip"])
        resp = await client.patch(f"/clients/{created['id']}", json={field: None}, headers=user_headers)
        assert resp.status_code == 400
        assert resp.json()["code"] == "VALIDATION_ERROR"

        unchanged = (await client.get(f"/clients/{created['id']}", headers=user_headers)).json()
        assert unchanged["status"] == "active"
        assert unchanged["tags"] == ["vip"]

    @pytest.mark.asyncio
    async def test_update_allows_null_for_optional_fields(self, client, user_headers):
        created = await _create_client(client, user_headers, company="Acme Inc")
        resp = await client.patch(
            f"/clients/{created['id']}", json={"company": None, "preferences": None}, headers=user_headers,
        )
        assert resp.status_code == 200
        assert resp.json()["company"] is None

    @pytest.mark.asyncio
    async def test_create_rejects_null_status(self, client, user_headers):
        resp = await client.post("/clients", json={"name": "Acme", "status": None}, headers=user_headers)
        assert resp.status_code == 400
        assert resp.json()["code"] == "VALIDATION_ERROR"


class TestClientGeneration:
    """测试标签刷新与语气分析"""

    @pytest.mark.asyncio
    async def test_refresh_niche_tags(self, client, user_headers):
        created = await _create_client(client, user_headers)
        with patch(
            "app.services.tag_extractor.anthropic_messages",
            AsyncMock(return_value=LLMResponse(text='["Thought Leadership"]', model="m")),
        ):
            resp = await client.patch(f"/clients/{created['id']}/niche-tags", headers=user_headers)

        assert resp.status_code == 200
        assert resp.json()["nicheTags"] == ["Thought Leadership"]

    @pytest.mark.asyncio
    async def test_voice_analysis_without_voice(self, client, user_headers):
        created = await _create_client(client, user_headers)
        resp = await client.post(f"/clients/{created['id']}/generate-voice-analysis", headers=user_headers)
        assert resp.status_code == 404
        assert resp.json() == {"detail": "No voice sample found for this client", "code": "VOICE_NOT_FOUND"}

    @pytest.mark.asyncio
    async def test_voice_analysis_placeholder_without_llm(self, client, user_headers):
        created = await _create_client(client, user_headers)
        resp = await client.post(
            f"/clients/{created['id']}/generate-voice-analysis",
            json={"voice": "We keep it casual."},
            headers=user_headers,
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["voice"] == "We keep it casual."
        assert data["voiceAnalysis"] == VOICE_ANALYSIS_PLACEHOLDER

    @pytest.mark.asyncio
    async def test_voice_analysis_with_llm(self, client, user_headers):
        created = await _create_client(client, user_headers, voice="Bold statements.")
        with patch(
            "app.services.clients.anthropic_messages",
            AsyncMock(return_value=LLMResponse(text="- Confident tone", model="m")),
        ):
            resp = await client.post(f"/clients/{created['id']}/generate-voice-analysis", headers=user_headers)

        assert resp.json()["voiceAnalysis"] == "- Confident tone"

    @pytest.mark.asyncio
    async def test_voice_analysis_llm_failure(self, client, user_headers):
        created = await _create_client(client, user_headers, voice="Bold statements.")
        with patch("app.services.clients.anthropic_messages", AsyncMock(side_effect=LLMError("overloaded"))):
            resp = await client.post(f"/clients/{created['id']}/generate-voice-analysis", headers=user_headers)

        assert resp.status_code == 502
        assert resp.json()["code"] == "LLM_ERROR"
