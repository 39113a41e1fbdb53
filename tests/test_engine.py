"""
tests.test_engine
~~~~~~~~~~~~~~~~~

反应引擎的挂载 / 卸载、信息流视口切换、刷新信号。
"""
from __future__ import annotations

import pytest

from reellive.client.engine import FeedViewport, ReactionEngine
from reellive.client.invalidation import InvalidationSignal
from reellive.schemas.events import Topic

TOPIC = Topic.video(1)


@pytest.fixture()
def signals() -> list[InvalidationSignal]:
    return []


@pytest.fixture()
def engine(fake_connection, loop, rng, signals) -> ReactionEngine:
    return ReactionEngine(TOPIC, fake_connection, loop=loop, rng=rng, on_invalidate=signals.append)


class TestReactionEngine:
    """测试引擎生命周期。"""

    def test_mount_subscribes_pipelines(self, engine, fake_connection, loop) -> None:
        engine.mount()

        assert engine.mounted
        assert fake_connection.listener_count == 3
        assert fake_connection.ensure_connected_calls == 1
        assert loop.scheduled_count == 1  # 礼物清扫

    def test_double_mount_raises(self, engine) -> None:
        engine.mount()

        with pytest.raises(RuntimeError):
            engine.mount()

    def test_unmount_cancels_everything(self, engine, fake_connection, loop, gift_message) -> None:
        """卸载后不再有监听器和待触发的回调。"""
        engine.mount()
        fake_connection.emit(gift_message("rocket", "legendary"))
        engine.reactions.trigger("fire")
        assert loop.scheduled_count > 0

        engine.unmount()

        assert not engine.mounted
        assert fake_connection.listener_count == 0
        assert loop.scheduled_count == 0
        loop.advance(10.0)

    def test_unmount_is_idempotent(self, engine) -> None:
        engine.mount()
        engine.unmount()
        engine.unmount()

        assert not engine.mounted

    def test_context_manager(self, engine, fake_connection, gift_message) -> None:
        with engine as mounted:
            fake_connection.emit(gift_message())
            assert len(mounted.gifts.active) == 1

        assert fake_connection.listener_count == 0

    def test_remount_after_unmount(self, engine, fake_connection, gift_message) -> None:
        engine.mount()
        engine.unmount()
        engine.mount()

        fake_connection.emit(gift_message())

        assert len(engine.gifts.active) == 1
        assert fake_connection.listener_count == 3


class TestInvalidation:
    """测试点赞 / 评论 / 播放量刷新信号。"""

    def test_like_and_comment_signals(self, engine, fake_connection, signals) -> None:
        engine.mount()

        fake_connection.emit({"type": "like", "videoId": 1})
        fake_connection.emit({"type": "comment", "videoId": 1, "data": {"content": "hi"}})

        assert [s.resource for s in signals] == ["likes", "comments"]
        assert all(s.topic == TOPIC for s in signals)

    def test_views_ignored_by_default(self, engine, fake_connection, signals) -> None:
        engine.mount()

        fake_connection.emit({"type": "view", "videoId": 1})

        assert signals == []

    def test_views_forwarded_when_enabled(self, fake_connection, loop, signals) -> None:
        engine = ReactionEngine(
            TOPIC, fake_connection, loop=loop, on_invalidate=signals.append, include_views=True,
        )
        engine.mount()

        fake_connection.emit({"type": "view", "videoId": 1})

        assert [s.resource for s in signals] == ["views"]

    def test_foreign_topic_signals_ignored(self, engine, fake_connection, signals) -> None:
        engine.mount()

        fake_connection.emit({"type": "like", "videoId": 2})
        fake_connection.emit({"type": "like", "liveStreamId": 1})

        assert signals == []


class TestFeedViewport:
    """测试信息流只为可见内容挂载引擎。"""

    @pytest.fixture()
    def viewport(self, fake_connection, loop) -> FeedViewport:
        return FeedViewport(
            fake_connection,
            engine_factory=lambda topic, connection: ReactionEngine(topic, connection, loop=loop),
        )

    def test_focus_mounts_engine(self, viewport, fake_connection) -> None:
        engine = viewport.focus(Topic.video(1))

        assert engine.mounted
        assert viewport.current is engine
        assert fake_connection.listener_count == 3

    def test_focus_same_topic_reuses_engine(self, viewport) -> None:
        first = viewport.focus(Topic.video(1))

        assert viewport.focus(Topic.video(1)) is first

    def test_switching_unmounts_previous(self, viewport, fake_connection, loop, gift_message) -> None:
        first = viewport.focus(Topic.video(1))
        fake_connection.emit(gift_message(video_id=1))

        second = viewport.focus(Topic.video(2))

        assert not first.mounted
        assert second.mounted
        assert second.topic == Topic.video(2)
        assert fake_connection.listener_count == 3
        assert loop.scheduled_count == 1  # 只剩新引擎的清扫

    def test_clear(self, viewport, fake_connection, loop) -> None:
        viewport.focus(Topic.video(1))

        viewport.clear()

        assert viewport.current is None
        assert fake_connection.listener_count == 0
        assert loop.scheduled_count == 0
