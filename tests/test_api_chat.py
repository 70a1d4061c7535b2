"""
聊天接口测试

- 会话创建、列表、删除
- 发送消息（未配置 LLM 时返回兜底回复，标题更新）
- 会话归属校验与限流
"""

import pytest
from unittest.mock import AsyncMock, patch

from app.config import get_settings
from app.infra.llm import LLMResponse
from app.services.chat import MOCK_RESPONSE
from app.services.retrieval import RetrievalResult


async def _new_session(client, headers, slug: str = "linkedin-post") -> dict:
    resp = await client.post(f"/chat/{slug}/sessions", headers=headers)
    assert resp.status_code == 201
    return resp.json()


class TestSessions:
    """测试会话管理"""

    @pytest.mark.asyncio
    async def test_create_and_list(self, client, user_headers, basic_user):
        session = await _new_session(client, user_headers)
        assert session["title"] == "New linkedin-post Chat"
        assert session["moduleSlug"] == "linkedin-post"
        assert session["userId"] == basic_user.id

        await _new_session(client, user_headers, "blog-post")
        resp = await client.get("/chat/linkedin-post/sessions", headers=user_headers)
        assert [s["id"] for s in resp.json()] == [session["id"]]

    @pytest.mark.asyncio
    async def test_sessions_are_per_user(self, client, user_headers, other_headers):
        await _new_session(client, user_headers)
        resp = await client.get("/chat/linkedin-post/sessions", headers=other_headers)
        assert resp.json() == []

    @pytest.mark.asyncio
    async def test_delete_session(self, client, user_headers):
        session = await _new_session(client, user_headers)
        resp = await client.delete(f"/chat/sessions/{session['id']}", headers=user_headers)
        assert resp.status_code == 200

        resp = await client.get(f"/chat/sessions/{session['id']}/messages", headers=user_headers)
        assert resp.status_code == 404
        assert resp.json()["code"] == "SESSION_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_other_user_forbidden(self, client, user_headers, other_headers):
        session = await _new_session(client, user_headers)

        resp = await client.get(f"/chat/sessions/{session['id']}/messages", headers=other_headers)
        assert resp.status_code == 403
        assert resp.json()["code"] == "FORBIDDEN"

        resp = await client.delete(f"/chat/sessions/{session['id']}", headers=other_headers)
        assert resp.status_code == 403

        resp = await client.post(
            f"/chat/sessions/{session['id']}/messages", json={"message": "hi"}, headers=other_headers,
        )
        assert resp.status_code == 403


class TestSendMessage:
    """测试发送消息"""

    @pytest.mark.asyncio
    async def test_without_llm_key_returns_fallback(self, client, user_headers):
        session = await _new_session(client, user_headers)
        resp = await client.post(
            f"/chat/sessions/{session['id']}/messages", json={"message": "Write a hook"}, headers=user_headers,
        )
        assert resp.status_code == 200
        messages = resp.json()
        assert [m["role"] for m in messages] == ["user", "assistant"]
        assert messages[0]["content"] == "Write a hook"
        assert messages[1]["content"] == MOCK_RESPONSE

        sessions = await client.get("/chat/linkedin-post/sessions", headers=user_headers)
        assert sessions.json()[0]["title"] == "Write a hook"

    @pytest.mark.asyncio
    async def test_long_message_title_truncated(self, client, user_headers):
        session = await _new_session(client, user_headers)
        message = "A" * 80
        await client.post(f"/chat/sessions/{session['id']}/messages", json={"message": message}, headers=user_headers)

        sessions = await client.get("/chat/linkedin-post/sessions", headers=user_headers)
        assert sessions.json()[0]["title"] == "A" * 50 + "..."

    @pytest.mark.asyncio
    async def test_title_only_set_once(self, client, user_headers):
        session = await _new_session(client, user_headers)
        await client.post(f"/chat/sessions/{session['id']}/messages", json={"message": "First"}, headers=user_headers)
        resp = await client.post(
            f"/chat/sessions/{session['id']}/messages", json={"message": "Second"}, headers=user_headers,
        )
        assert len(resp.json()) == 4

        sessions = await client.get("/chat/linkedin-post/sessions", headers=user_headers)
        assert sessions.json()[0]["title"] == "First"

    @pytest.mark.asyncio
    async def test_with_llm_uses_module_prompt(self, client, admin_headers, user_headers):
        await client.post(
            "/modules",
            json={"name": "LinkedIn", "slug": "linkedin-post", "tier": "MVP",
                  "systemPrompt": "You write LinkedIn posts.", "temperature": 0.4},
            headers=admin_headers,
        )
        await client.post("/providers", json={"type": "anthropic", "apiKey": "sk-db"}, headers=admin_headers)
        session = await _new_session(client, user_headers)

        empty = RetrievalResult(chunks=[], total_retrieved=0, query="q")
        mock_llm = AsyncMock(return_value=LLMResponse(text="Here is your post", model="m"))
        with patch("app.services.retrieval.retrieve", AsyncMock(return_value=empty)), \
             patch("app.services.chat.anthropic_messages", mock_llm):
            resp = await client.post(
                f"/chat/sessions/{session['id']}/messages", json={"message": "Write one"}, headers=user_headers,
            )

        assert resp.json()[-1]["content"] == "Here is your post"
        kwargs = mock_llm.call_args.kwargs
        assert kwargs["system"].startswith("You write LinkedIn posts.")
        assert kwargs["temperature"] == 0.4
        assert kwargs["api_key"] == "sk-db"

    @pytest.mark.asyncio
    async def test_empty_message_rejected(self, client, user_headers):
        session = await _new_session(client, user_headers)
        resp = await client.post(f"/chat/sessions/{session['id']}/messages", json={"message": ""}, headers=user_headers)
        assert resp.status_code == 400

    @pytest.mark.asyncio
    async def test_unknown_session(self, client, user_headers):
        resp = await client.post("/chat/sessions/missing/messages", json={"message": "hi"}, headers=user_headers)
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_throttled(self, client, user_headers):
        session = await _new_session(client, user_headers)
        limit = get_settings().throttle_limit
        for _ in range(limit):
            resp = await client.post(
                f"/chat/sessions/{session['id']}/messages", json={"message": "hi"}, headers=user_headers,
            )
            assert resp.status_code == 200

        resp = await client.post(f"/chat/sessions/{session['id']}/messages", json={"message": "hi"}, headers=user_headers)
        assert resp.status_code == 429
        assert resp.json() == {"detail": "Too many requests", "code": "RATE_LIMIT_EXCEEDED"}
