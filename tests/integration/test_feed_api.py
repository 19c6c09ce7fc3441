"""
Integration tests for Feed API.
"""
import json

from fastapi.testclient import TestClient

from feedcore.config import get_settings
from tests.conftest import CDN

VIDEOS = [
    {
        "id": f"v{i}",
        "title": f"Video {i}",
        "category": ["horror", "comedy", "nature"][i % 3],
        "is_trending": i == 4,
        "source_url": f"{CDN}/video/v{i}.mp4",
        "poster_url": f"{CDN}/poster/v{i}.jpg",
    }
    for i in range(6)
]

KEY_A = "key-aaaaaaaa"
KEY_B = "key-bbbbbbbb"


def load_corpus(client: TestClient) -> None:
    response = client.put("/v1/corpus", json={"videos": VIDEOS})
    assert response.status_code == 200
    assert response.json() == {"videos": len(VIDEOS)}


class TestFeedAPI:
    def test_get_feed(self, test_client: TestClient):
        load_corpus(test_client)

        response = test_client.get("/v1/feed", params={"user_id": "u1", "limit": 4})

        assert response.status_code == 200
        data = response.json()
        assert len(data["items"]) == 4
        assert data["total"] == len(VIDEOS)
        assert data["mode"] == "personalized"
        assert response.headers["Cache-Control"] == "private, no-cache"
        assert response.headers["X-Feed-Mode"] == "personalized"
        assert response.headers["ETag"].startswith('W/"')

    def test_empty_corpus(self, test_client: TestClient):
        response = test_client.get("/v1/feed", params={"user_id": "u1"})

        assert response.status_code == 200
        assert response.json()["items"] == []
        assert "ETag" not in response.headers

    def test_etag_not_modified(self, test_client: TestClient):
        load_corpus(test_client)
        first = test_client.get("/v1/feed", params={"user_id": "u1"})
        etag = first.headers["ETag"]

        second = test_client.get(
            "/v1/feed",
            params={"user_id": "u1"},
            headers={"If-None-Match": etag},
        )

        assert second.status_code == 304

    def test_limit_validation(self, test_client: TestClient):
        response = test_client.get("/v1/feed", params={"user_id": "u1", "limit": 0})
        assert response.status_code == 422

    def test_user_id_required(self, test_client: TestClient):
        response = test_client.get("/v1/feed")
        assert response.status_code == 422

    def test_everything_disliked_still_fills_feed(self, test_client: TestClient):
        load_corpus(test_client)
        for video in VIDEOS:
            test_client.post(f"/v1/users/u1/dislikes/{video['id']}")

        response = test_client.get("/v1/feed", params={"user_id": "u1", "refresh": True})

        data = response.json()
        assert data["mode"] == "safety_net"
        assert len(data["items"]) == len(VIDEOS)


class TestInteractionsAPI:
    def test_like_then_dislike(self, test_client: TestClient):
        load_corpus(test_client)

        liked = test_client.post("/v1/users/u1/likes/v0").json()
        assert liked["liked_ids"] == ["v0"]

        disliked = test_client.post("/v1/users/u1/dislikes/v0").json()
        assert disliked["liked_ids"] == []
        assert disliked["disliked_ids"] == ["v0"]

        restored = test_client.delete("/v1/users/u1/dislikes/v0").json()
        assert restored["disliked_ids"] == []

    def test_like_records_interest(self, test_client: TestClient):
        load_corpus(test_client)

        test_client.post("/v1/users/u1/likes/v1")

        assert test_client.get("/v1/users/u1/interests").json() == ["comedy"]

    def test_dislike_hides_video(self, test_client: TestClient):
        load_corpus(test_client)
        test_client.get("/v1/feed", params={"user_id": "u1"})

        test_client.post("/v1/users/u1/dislikes/v2")
        data = test_client.get("/v1/feed", params={"user_id": "u1"}).json()

        assert "v2" not in [item["id"] for item in data["items"]]

    def test_progress_is_clamped(self, test_client: TestClient):
        load_corpus(test_client)

        response = test_client.put("/v1/users/u1/progress/v3", json={"progress": 1.5})

        assert response.status_code == 200
        assert response.json()["watch_history"] == {"v3": 1.0}

    def test_non_finite_progress_rejected(self, test_client: TestClient):
        load_corpus(test_client)

        response = test_client.put(
            "/v1/users/u1/progress/v3",
            content=b'{"progress": NaN}',
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 422
        assert test_client.get("/v1/users/u1/interactions").json()["watch_history"] == {}

    def test_save_toggle(self, test_client: TestClient):
        load_corpus(test_client)

        assert test_client.post("/v1/users/u1/saves/v1").json()["saved_ids"] == ["v1"]
        assert test_client.post("/v1/users/u1/saves/v1").json()["saved_ids"] == []

    def test_unknown_video(self, test_client: TestClient):
        load_corpus(test_client)

        response = test_client.post("/v1/users/u1/likes/nope")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"

    def test_explicit_interest_and_sync(self, test_client: TestClient):
        response = test_client.post("/v1/users/u1/interests", json={"category": "nature"})
        assert response.json() == ["nature"]

        synced = test_client.post("/v1/users/u1/interests/sync").json()
        assert synced == {"user_id": "u1", "interests": ["nature"]}


class TestMediaAPI:
    def test_buffer_and_serve(self, test_client: TestClient, cdn_files, app_transport):
        video_url = f"{CDN}/video/v0.mp4"
        poster_url = f"{CDN}/poster/v0.jpg"
        cdn_files[video_url] = b"\x00\x00\x00\x18ftypmp42" * 10
        cdn_files[poster_url] = b"\xff\xd8\xff\xe0jpeg"

        response = test_client.post(
            "/v1/media/buffer",
            json={"source_url": video_url, "poster_url": poster_url},
        )
        assert response.json() == {"media_cached": True, "image_cached": True}

        cached = test_client.get("/v1/media/cached", params={"url": video_url})
        assert cached.status_code == 200
        assert cached.content == cdn_files[video_url]
        assert cached.headers["X-Cache"] == "HIT"

        image = test_client.get("/v1/media/cached", params={"url": poster_url, "kind": "image"})
        assert image.content == cdn_files[poster_url]

        # Already buffered: no second fetch
        test_client.post("/v1/media/buffer", json={"source_url": video_url})
        assert app_transport.count(video_url) == 1

    def test_failed_buffer_reports_false(self, test_client: TestClient):
        response = test_client.post(
            "/v1/media/buffer", json={"source_url": f"{CDN}/video/missing.mp4"}
        )

        assert response.status_code == 200
        assert response.json() == {"media_cached": False, "image_cached": False}

    def test_malformed_url_reports_false(self, test_client: TestClient):
        response = test_client.post(
            "/v1/media/buffer",
            json={"source_url": "https://[::1/v.mp4", "poster_url": "http://"},
        )

        assert response.status_code == 200
        assert response.json() == {"media_cached": False, "image_cached": False}

    def test_cache_miss(self, test_client: TestClient):
        response = test_client.get("/v1/media/cached", params={"url": f"{CDN}/video/x.mp4"})
        assert response.status_code == 404

    def test_non_http_url_rejected(self, test_client: TestClient):
        response = test_client.get("/v1/media/cached", params={"url": "blob:abc"})
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"


class TestKeysAPI:
    def test_save_and_status(self, test_client: TestClient, cdn_files):
        base = get_settings().NARRATION_BASE_URL
        cdn_files[f"{base}/v1/user/subscription"] = json.dumps(
            {"character_count": 1000, "character_limit": 10000}
        ).encode()

        saved = test_client.put("/v1/keys", json={"keys": [KEY_A, "short", KEY_B, KEY_A]})
        assert saved.json() == {"keys": 2}

        status = test_client.get("/v1/keys/status").json()
        assert [entry["key"] for entry in status] == ["...aaaa", "...bbbb"]
        assert all(entry["status"] == "active" for entry in status)
        assert status[0]["remaining"] == 9000

    def test_status_with_unreachable_provider(self, test_client: TestClient):
        test_client.put("/v1/keys", json={"keys": [KEY_A]})

        status = test_client.get("/v1/keys/status").json()

        assert status[0]["status"] == "error"
        assert status[0]["remaining"] == -1

    def test_optimize_empty_pool(self, test_client: TestClient):
        response = test_client.post("/v1/keys/optimize")

        assert response.status_code == 503
        assert response.json()["error"]["code"] == "KEY_POOL_EMPTY"


class TestHealthAPI:
    def test_health(self, test_client: TestClient):
        assert test_client.get("/health").json() == {"status": "healthy"}

    def test_ready(self, test_client: TestClient):
        test_client.put("/v1/keys", json={"keys": [KEY_A]})

        data = test_client.get("/health/ready").json()

        settings = get_settings()
        assert data["prefetch"]["media_bucket"] == settings.MEDIA_BUCKET
        assert data["prefetch"]["image_bucket"] == settings.IMAGE_BUCKET
        assert data["key_pool"] == {"keys": 1, "current_index": 0}
