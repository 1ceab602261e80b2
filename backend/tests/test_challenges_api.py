from datetime import datetime, timedelta, timezone

import pytest
from fastapi import status
from redis.exceptions import ConnectionError as RedisConnectionError

from glowboard.routes import challenges as challenges_routes

from conftest import register_login, pipeline_headers, user_id_of


def _now():
    return datetime.now(timezone.utc)


def _parse(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _payload(**overrides):
    data = {
        "title": "Mirror Monday",
        "description": "Your best mirror selfie",
        "theme": "mirror",
        "hashtags": ["#Mirror"],
        "start_date": (_now() + timedelta(hours=1)).isoformat(),
        "duration": 3,
        "winning_reward": "Profile badge",
    }
    data.update(overrides)
    return data


async def _create(ac, hdrs, **overrides):
    r = await ac.post("/challenges", headers=hdrs, json=_payload(**overrides))
    assert r.status_code == status.HTTP_201_CREATED, r.text
    return r.json()


@pytest.mark.asyncio
async def test_create_and_lookup(client):
    hdrs = await register_login(client, "creator_one")
    ch = await _create(client, hdrs)

    assert ch["runtime_state"] == "upcoming"
    assert ch["hashtags"] == ["mirror"]
    assert ch["creator"]["username"] == "creator_one"
    assert ch["invite_code"] and len(ch["invite_code"]) == 10
    assert ch["share_url"].endswith(f"/challenge/{ch['unique_code']}")
    start = _parse(ch["start_date"])
    end = _parse(ch["end_date"])
    assert end - start == timedelta(days=3)

    # anonymous lookup by share code hides the invite code
    r = await client.get(f"/challenges/{ch['unique_code']}")
    assert r.status_code == 200
    assert r.json()["invite_code"] is None
    assert r.json()["is_private"] is False

    r = await client.get(f"/challenges/{ch['invite_code']}")
    assert r.status_code == 200
    assert r.json()["is_private"] is True
    assert r.json()["invite_code"] == ch["invite_code"]

    r = await client.get("/challenges/mine", headers=hdrs)
    assert [c["id"] for c in r.json()] == [ch["id"]]

    r = await client.get("/challenges/trending")
    assert ch["id"] in [c["id"] for c in r.json()]

    me = (await client.get("/auth/me", headers=hdrs)).json()
    assert me["challenges_created"] == 1


@pytest.mark.asyncio
async def test_errors_carry_kind(client):
    hdrs = await register_login(client)

    r = await client.post("/challenges", headers=hdrs, json=_payload(duration=5))
    assert r.status_code == 422
    assert r.json()["error"] == "validation_error"

    r = await client.get("/challenges/not-a-code")
    assert r.status_code == 422

    r = await client.get("/challenges/ZZZZZZZZ")
    assert r.status_code == 404
    assert r.json()["error"] == "not_found"

    r = await client.post("/challenges", json=_payload())
    assert r.status_code in (401, 403)


@pytest.mark.asyncio
async def test_rate_limit(client):
    hdrs = await register_login(client)
    for _ in range(3):
        await _create(client, hdrs)
    r = await client.post("/challenges", headers=hdrs, json=_payload())
    assert r.status_code == 429
    assert r.json()["error"] == "rate_limit_exceeded"


@pytest.mark.asyncio
async def test_update_and_delete_owner_only(client):
    owner = await register_login(client)
    other = await register_login(client)
    ch = await _create(client, owner)

    r = await client.put(f"/challenges/{ch['id']}", headers=other, json={"title": "Mine now"})
    assert r.status_code == 403
    assert r.json()["error"] == "forbidden"

    r = await client.put(f"/challenges/{ch['id']}", headers=owner, json={"title": "Mirror Tuesday"})
    assert r.status_code == 200
    assert r.json()["title"] == "Mirror Tuesday"

    r = await client.delete(f"/challenges/{ch['id']}", headers=other)
    assert r.status_code == 403

    r = await client.delete(f"/challenges/{ch['id']}", headers=owner)
    assert r.status_code == 204
    assert (await client.get(f"/challenges/{ch['unique_code']}")).status_code == 404
    assert (await client.get("/auth/me", headers=owner)).json()["challenges_created"] == 0


@pytest.mark.asyncio
async def test_invite_flow_and_private_leaderboard(client):
    owner = await register_login(client)
    player = await register_login(client, "player_one")
    pid = await user_id_of(client, player)
    pipeline = pipeline_headers()
    ch = await _create(client, owner)

    # scoring before accepting is refused
    r = await client.post(f"/scores/{ch['id']}/participation", headers=pipeline, json={"user_id": pid, "score": 50})
    assert r.status_code == 403

    r = await client.post(f"/challenges/{ch['invite_code']}/accept", headers=player)
    assert r.status_code == 200
    assert r.json()["response"] == "accepted"

    r = await client.post(f"/scores/{ch['id']}/participation", headers=pipeline, json={"user_id": pid, "score": 75})
    assert r.status_code == 200
    assert r.json()["status"] == "completed"
    r = await client.post(f"/scores/{ch['id']}/participation", headers=pipeline, json={"user_id": pid, "score": 60})
    assert r.json()["score"] == 60

    r = await client.get(f"/challenges/{ch['invite_code']}/leaderboard")
    board = r.json()
    assert board["mode"] == "private"
    assert [(row["username"], row["score"]) for row in board["leaderboard"]] == [("player_one", 60)]

    r = await client.post(f"/challenges/{ch['invite_code']}/decline", headers=player)
    assert r.status_code == 200
    r = await client.get(f"/challenges/{ch['invite_code']}/leaderboard")
    assert r.json()["leaderboard"] == []


@pytest.mark.asyncio
async def test_public_scores_and_leaderboard(client):
    owner = await register_login(client)
    player = await register_login(client, "player_two")
    pid = await user_id_of(client, player)
    pipeline = pipeline_headers()
    ch = await _create(client, owner)

    r = await client.post(f"/scores/{ch['id']}", headers=pipeline, json={"user_id": pid, "score": 82})
    assert r.status_code == 201
    assert r.json()["first_submission"] is True
    r = await client.post(f"/scores/{ch['id']}", headers=pipeline, json={"user_id": pid, "score": 90})
    assert r.json()["first_submission"] is False

    r = await client.post(f"/scores/{ch['id']}", headers=pipeline, json={"user_id": pid, "score": 120})
    assert r.status_code == 422

    board = (await client.get(f"/challenges/{ch['unique_code']}/leaderboard")).json()
    assert board["mode"] == "public"
    [row] = board["leaderboard"]
    assert row["username"] == "player_two"
    assert row["total_score"] == 172
    assert row["rank"] == 1

    r = await client.get(f"/challenges/{ch['unique_code']}")
    assert r.json()["participants_count"] == 1


@pytest.mark.asyncio
async def test_resolve_winner_before_end(client):
    owner = await register_login(client)
    ch = await _create(client, owner)

    r = await client.post(f"/challenges/{ch['id']}/resolve-winner", headers=owner)
    assert r.status_code == 200
    assert r.json()["outcome"] == "running"
    assert r.json()["winner_id"] is None


@pytest.mark.asyncio
async def test_winner_sweep_queue_down(client, monkeypatch):
    hdrs = await register_login(client)

    class _DownQueue:
        def enqueue(self, *args, **kwargs):
            raise RedisConnectionError("connection refused")

    monkeypatch.setattr(challenges_routes, "q", _DownQueue())
    r = await client.post("/challenges/resolve-winners", headers=hdrs)
    assert r.status_code == 503


@pytest.mark.asyncio
async def test_users_cannot_post_scores(client):
    owner = await register_login(client)
    player = await register_login(client)
    pid = await user_id_of(client, player)
    ch = await _create(client, owner)
    assert (await client.post(f"/challenges/{ch['invite_code']}/accept", headers=player)).status_code == 200

    for path in (f"/scores/{ch['id']}/participation", f"/scores/{ch['id']}"):
        r = await client.post(path, headers=player, json={"user_id": pid, "score": 100})
        assert r.status_code in (401, 403)
        r = await client.post(path, json={"user_id": pid, "score": 100})
        assert r.status_code in (401, 403)

    board = (await client.get(f"/challenges/{ch['invite_code']}/leaderboard")).json()
    assert board["leaderboard"] == []
    assert (await client.get(f"/challenges/{ch['unique_code']}")).json()["participants_count"] == 0


@pytest.mark.asyncio
async def test_pipeline_score_for_unknown_user(client):
    owner = await register_login(client)
    ch = await _create(client, owner)
    r = await client.post(
        f"/scores/{ch['id']}", headers=pipeline_headers(),
        json={"user_id": "00000000-0000-0000-0000-000000000001", "score": 50},
    )
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_blank_title_update_rejected(client):
    owner = await register_login(client)
    ch = await _create(client, owner)

    r = await client.put(f"/challenges/{ch['id']}", headers=owner, json={"title": "   "})
    assert r.status_code == 422
    r = await client.post("/challenges", headers=owner, json=_payload(winning_reward="ab"))
    assert r.status_code == 422

    r = await client.get(f"/challenges/{ch['unique_code']}")
    assert r.json()["title"] == "Mirror Monday"
