"""
Unit tests for interaction state, interest profiles and the feed service.
"""
import random
from unittest.mock import AsyncMock, MagicMock

import pytest

from feedcore.core.exceptions import NotFoundError
from feedcore.models.schemas import InteractionState, InterestProfile
from feedcore.repositories.memory import (
    InMemoryCorpusRepository,
    InMemoryInteractionRepository,
    InMemoryProfileRepository,
)
from feedcore.services.feed import FeedService
from feedcore.services.interests import InterestProfileService
from feedcore.services.ranking import MODE_RECYCLE, FeedRanker


class TestInteractionState:
    def test_like_and_dislike_are_exclusive(self):
        state = InteractionState()

        assert state.toggle_like("a") is True
        state.dislike("a")
        assert "a" not in state.liked_ids
        assert "a" in state.disliked_ids

        assert state.toggle_like("a") is True
        assert "a" not in state.disliked_ids

    def test_toggle_like_twice_unlikes(self):
        state = InteractionState()
        state.toggle_like("a")
        assert state.toggle_like("a") is False
        assert state.liked_ids == set()

    def test_restore_and_save(self):
        state = InteractionState(disliked_ids={"a"})
        state.restore("a")
        assert state.disliked_ids == set()

        assert state.toggle_save("a") is True
        assert state.toggle_save("a") is False

    def test_progress_is_clamped(self):
        state = InteractionState()
        assert state.record_progress("a", 1.7) == 1.0
        assert state.record_progress("b", -0.2) == 0.0
        assert state.is_watched("a") is True
        assert state.is_watched("b") is False

    def test_nan_progress_counts_as_unwatched(self):
        state = InteractionState()
        assert state.record_progress("a", float("nan")) == 0.0
        assert state.is_watched("a") is False

    def test_missing_fields_are_empty(self):
        state = InteractionState.model_validate(
            {"liked_ids": None, "watch_history": [{"id": "a", "progress": 0.9}, {"bad": 1}]}
        )
        assert state.liked_ids == set()
        assert state.watch_history == {"a": 0.9}


class TestInterestProfileService:
    @pytest.mark.asyncio
    async def test_record_interest_grows_once(self):
        local, remote = InMemoryProfileRepository(), InMemoryProfileRepository()
        service = InterestProfileService(local, remote)

        assert await service.record_interest("u1", " horror ") is True
        assert await service.record_interest("u1", "horror") is False
        assert await service.record_interest("u1", "") is False

        assert await service.get_interests("u1") == ["horror"]
        assert (await remote.get_profile("u1")).interests == ["horror"]

    @pytest.mark.asyncio
    async def test_remote_failure_keeps_local_write(self):
        local = InMemoryProfileRepository()
        remote = MagicMock()
        remote.save_profile = AsyncMock(side_effect=ConnectionError("offline"))
        service = InterestProfileService(local, remote)

        assert await service.record_interest("u1", "nature") is True
        assert await service.get_interests("u1") == ["nature"]

    @pytest.mark.asyncio
    async def test_sync_merges_remote(self):
        local, remote = InMemoryProfileRepository(), InMemoryProfileRepository()
        await local.save_profile(InterestProfile(user_id="u1", interests=["comedy"]))
        await remote.save_profile(InterestProfile(user_id="u1", interests=["horror", "comedy"]))
        service = InterestProfileService(local, remote)

        profile = await service.sync("u1")

        assert profile.interests == ["comedy", "horror"]
        assert await service.get_interests("u1") == ["comedy", "horror"]

    @pytest.mark.asyncio
    async def test_sync_with_unreachable_remote(self):
        local = InMemoryProfileRepository()
        await local.save_profile(InterestProfile(user_id="u1", interests=["comedy"]))
        remote = MagicMock()
        remote.get_profile = AsyncMock(side_effect=ConnectionError("offline"))
        service = InterestProfileService(local, remote)

        profile = await service.sync("u1")

        assert profile.interests == ["comedy"]


@pytest.fixture
def feed_parts(corpus):
    corpus_repo = InMemoryCorpusRepository(corpus)
    interaction_repo = InMemoryInteractionRepository()
    interests = InterestProfileService(InMemoryProfileRepository(), InMemoryProfileRepository())
    return corpus_repo, interaction_repo, interests


@pytest.fixture
def feed_service(feed_parts):
    corpus_repo, interaction_repo, interests = feed_parts
    return FeedService(
        corpus_repo,
        interaction_repo,
        interests,
        FeedRanker(rng=random.Random(5)),
    )


def ids(response):
    return [v.id for v in response.items]


class TestFeedService:
    @pytest.mark.asyncio
    async def test_order_is_held_within_window(self, feed_service, corpus):
        first = await feed_service.get_feed("u1")
        second = await feed_service.get_feed("u1")

        assert ids(first) == ids(second)
        assert first.total == len(corpus)

    @pytest.mark.asyncio
    async def test_refresh_reranks(self, feed_service):
        ranker = MagicMock(wraps=feed_service._ranker)
        feed_service._ranker = ranker

        await feed_service.get_feed("u1")
        await feed_service.get_feed("u1", refresh=True)

        assert ranker.rank_with_mode.call_count == 2

    @pytest.mark.asyncio
    async def test_limit(self, feed_service, corpus):
        response = await feed_service.get_feed("u1", limit=3)
        assert len(response.items) == 3
        assert response.total == len(corpus)

    @pytest.mark.asyncio
    async def test_dislike_hides_from_held_order(self, feed_service):
        before = await feed_service.get_feed("u1")
        hidden = before.items[0].id

        await feed_service.dislike("u1", hidden)
        after = await feed_service.get_feed("u1")

        assert hidden not in ids(after)
        assert ids(after) == [vid for vid in ids(before) if vid != hidden]

    @pytest.mark.asyncio
    async def test_like_records_interest(self, feed_service, feed_parts):
        _, _, interests = feed_parts

        state = await feed_service.toggle_like("u1", "v0")
        assert "v0" in state.liked_ids
        assert await interests.get_interests("u1") == ["horror"]

        # Unliking does not shrink the profile
        state = await feed_service.toggle_like("u1", "v0")
        assert "v0" not in state.liked_ids
        assert await interests.get_interests("u1") == ["horror"]

    @pytest.mark.asyncio
    async def test_progress_persists_and_records_interest(self, feed_service, feed_parts):
        _, interaction_repo, interests = feed_parts

        await feed_service.record_progress("u1", "v1", 0.95)

        stored = await interaction_repo.get_interactions("u1")
        assert stored.is_watched("v1")
        assert await interests.get_interests("u1") == ["comedy"]

    @pytest.mark.asyncio
    async def test_watched_everything_recycles(self, feed_service, corpus):
        for video in corpus:
            await feed_service.record_progress("u1", video.id, 1.0)

        response = await feed_service.get_feed("u1", refresh=True)

        assert response.mode == MODE_RECYCLE
        assert sorted(ids(response)) == sorted(v.id for v in corpus)

    @pytest.mark.asyncio
    async def test_unknown_video(self, feed_service):
        with pytest.raises(NotFoundError):
            await feed_service.toggle_like("u1", "missing")

    @pytest.mark.asyncio
    async def test_replace_corpus_resets_and_seeds(self, feed_parts, corpus):
        corpus_repo, interaction_repo, interests = feed_parts
        prefetch = MagicMock()
        service = FeedService(
            corpus_repo, interaction_repo, interests, FeedRanker(rng=random.Random(1)), prefetch
        )
        await service.get_feed("u1")

        count = await service.replace_corpus(corpus[:2])
        response = await service.get_feed("u1")

        assert count == 2
        assert sorted(ids(response)) == ["v0", "v1"]
        prefetch.seed_initial_buffer.assert_called_once_with(corpus[:2])
