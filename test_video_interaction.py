"""Tests for feed gates and composite feed actions."""
import pytest

from config import Config, InteractionSettings
from conftest import FakeDispatcher, FakeProbe, ScriptedRandom, SCREEN_SIZE, handle
from douyin_id_map import ElementRole
from element_registry import EMPTY_SNAPSHOT, ElementRegistry
from interaction_scheduler import InteractionScheduler
from interaction_stats import InteractionStatsAggregator
from interactions import InteractionMode, InteractionType, effective_probability
from interactions.video_interaction import VideoInteractionManager
from keyword_store import KeywordStore

COMMENT_BTN = handle(1000, 1100, 1040, 1140)
SEND_BTN = handle(950, 1800, 1050, 1860)
EDIT_FIELD = handle(0, 1800, 900, 1860)
FEED = handle(500, 80, 580, 120)


def make_manager(probe, events, sleep, rng, settings=None, keyword_store=None, text_reader=None,
                 dispatcher=None):
    stats = InteractionStatsAggregator()
    manager = VideoInteractionManager(
        ElementRegistry(), probe, dispatcher or FakeDispatcher(events),
        settings or InteractionSettings(),
        stats=stats, rng=rng, sleep=sleep,
        keyword_store=keyword_store or KeywordStore(), text_reader=text_reader,
    )
    return manager, stats


def fallback(position):
    return ('tap',) + Config.resolve(position, SCREEN_SIZE)


def test_effective_probability_caps_at_100():
    assert effective_probability(10, 80) == 90
    assert effective_probability(60, 80) == 100
    assert effective_probability(0, 0) == 0


def test_feed_comment_end_to_end(events, record_sleep, clock):
    """Boosted comment gate fires; sub-steps run in order; then the feed moves on."""
    probe = FakeProbe(
        roles={
            ElementRole.COMMENT_BUTTON: COMMENT_BTN,
            ElementRole.COMMENT_EDIT_FIELD: EDIT_FIELD,
            ElementRole.VIDEO_DESCRIPTION: handle(0, 1500, 800, 1600, text="今天的 #猫# 真可爱"),
        },
        texts={"推荐": FEED, "发送": SEND_BTN},
    )
    settings = InteractionSettings(like_probability=0, comment_probability=10,
                                   favorite_probability=0, follow_probability=0)
    keywords = KeywordStore()
    cat = keywords.add("猫", comment_boost=80, like_boost=0, follow_boost=0)

    scheduler = InteractionScheduler(
        probe, FakeDispatcher(events), settings,
        keyword_store=keywords, rng=ScriptedRandom(), clock=clock, sleep=record_sleep)
    scheduler.start_mode(InteractionMode.ACCOUNT_NURTURING)

    scheduler.handle_ui_event()          # enters FEED, dwell starts
    assert events == []

    clock.advance(6)
    scheduler.handle_ui_event()

    width, height = SCREEN_SIZE
    assert events == [
        ('tap', 1020, 1120),
        ('sleep', Config.SETTLE_AFTER_TAP),
        ('set_text', EDIT_FIELD, settings.feed_comments[0]),
        ('sleep', Config.SETTLE_AFTER_TEXT),
        ('tap', 1000, 1830),
        ('sleep', Config.COOLDOWN_COMMENT),
        ('swipe', [(width // 2, int(height * Config.SWIPE_START_RATIO)),
                   (width // 2, int(height * Config.SWIPE_END_RATIO))], Config.SWIPE_DURATION_MS),
    ]
    stats = scheduler.get_stats(InteractionMode.ACCOUNT_NURTURING)
    assert (stats.comment, stats.like, stats.total, stats.videos_viewed) == (1, 0, 1, 1)
    assert keywords.get(cat.id).match_count == 1


def test_nothing_happens_before_min_watch(events, record_sleep, clock):
    probe = FakeProbe(texts={"推荐": FEED})
    scheduler = InteractionScheduler(probe, FakeDispatcher(events), rng=ScriptedRandom(),
                                     clock=clock, sleep=record_sleep)
    scheduler.start_mode(InteractionMode.ACCOUNT_NURTURING)

    scheduler.handle_ui_event()
    clock.advance(4.9)
    scheduler.handle_ui_event()

    assert events == []


def test_max_watch_forces_swipe(events, record_sleep, clock):
    probe = FakeProbe(texts={"推荐": FEED})
    scheduler = InteractionScheduler(probe, FakeDispatcher(events),
                                     rng=ScriptedRandom(default_random=0.9),
                                     clock=clock, sleep=record_sleep)
    scheduler.start_mode(InteractionMode.ACCOUNT_NURTURING)
    scheduler.handle_ui_event()

    clock.advance(15)
    scheduler.handle_ui_event()
    assert events == []

    clock.advance(16)
    scheduler.handle_ui_event()
    assert [e[0] for e in events] == ['swipe']


@pytest.mark.parametrize("draw, expected", [
    (0.0, InteractionType.LIKE),
    (0.7, InteractionType.COMMENT),
    (0.9, InteractionType.FOLLOW),
])
def test_simple_partition_without_content(events, record_sleep, draw, expected):
    probe = FakeProbe(roles={ElementRole.FOLLOW_BUTTON: handle(0, 0, 10, 10)})
    manager, _ = make_manager(probe, events, record_sleep, ScriptedRandom(random_values=[draw]))

    results = manager.perform_random_interactions(EMPTY_SNAPSHOT)

    assert [r.interaction for r in results] == [expected]


def test_gates_pause_between_actions(events, record_sleep):
    probe = FakeProbe(roles={ElementRole.VIDEO_DESCRIPTION: handle(0, 0, 10, 10, text="日常")})
    settings = InteractionSettings(like_probability=100, comment_probability=0,
                                   favorite_probability=100, follow_probability=0)
    manager, stats = make_manager(probe, events, record_sleep, ScriptedRandom(), settings=settings)
    snapshot, _ = manager.registry.detect(probe)

    results = manager.perform_random_interactions(snapshot)

    assert [r.interaction for r in results] == [InteractionType.LIKE, InteractionType.FAVORITE]
    assert events == [
        fallback(Config.FEED_LIKE_POS),
        ('sleep', Config.COOLDOWN_LIKE),
        ('sleep', Config.GATE_PAUSE_MIN),
        fallback(Config.FEED_FAVORITE_POS),
        ('sleep', Config.COOLDOWN_LIKE),
    ]
    assert stats.get(InteractionMode.ACCOUNT_NURTURING).favorite == 1


def test_favorite_uses_half_the_like_boost(events, record_sleep):
    probe = FakeProbe(roles={ElementRole.VIDEO_DESCRIPTION: handle(0, 0, 10, 10, text="猫")})
    settings = InteractionSettings(like_probability=0, comment_probability=0,
                                   favorite_probability=0, follow_probability=0)
    keywords = KeywordStore()
    keywords.add("猫", like_boost=41)
    # like gate 40 < 41 fires; favorite gate 40 < 41 // 2 does not
    manager, _ = make_manager(probe, events, record_sleep,
                              ScriptedRandom(default_randrange=40),
                              settings=settings, keyword_store=keywords)
    snapshot, _ = manager.registry.detect(probe)

    results = manager.perform_random_interactions(snapshot)

    assert [r.interaction for r in results] == [InteractionType.LIKE]


def test_comment_abandoned_without_edit_field(events, record_sleep):
    probe = FakeProbe(texts={"发送": SEND_BTN})
    manager, stats = make_manager(probe, events, record_sleep, ScriptedRandom())

    result = manager.comment()

    assert result.success is False
    assert ('set_text',) not in [e[:1] for e in events]
    assert stats.get(InteractionMode.ACCOUNT_NURTURING).comment == 0
    assert manager.current_interaction == InteractionType.NONE


def test_follow_via_profile(events, record_sleep):
    follow = handle(400, 600, 600, 660)
    probe = FakeProbe(texts={"关注": follow})
    manager, stats = make_manager(probe, events, record_sleep, ScriptedRandom())

    assert manager.follow().success is True
    assert events == [
        fallback(Config.FEED_AVATAR_POS),
        ('sleep', Config.SETTLE_AFTER_PROFILE_OPEN),
        ('tap', 500, 630),
        ('sleep', Config.SETTLE_AFTER_FOLLOW),
        ('back',),
        ('sleep', Config.COOLDOWN_FOLLOW),
    ]
    assert stats.get(InteractionMode.ACCOUNT_NURTURING).follow == 1


def test_follow_button_on_feed(events, record_sleep):
    probe = FakeProbe(roles={ElementRole.FOLLOW_BUTTON: handle(980, 500, 1020, 540)})
    manager, stats = make_manager(probe, events, record_sleep, ScriptedRandom())
    manager.registry.detect(probe)

    manager.follow()

    assert events[0] == ('tap', 1000, 520)
    assert ('back',) not in events
    assert stats.get(InteractionMode.ACCOUNT_NURTURING).follow == 1


def test_dispatch_error_is_contained(events, record_sleep):
    manager, stats = make_manager(FakeProbe(), events, record_sleep, ScriptedRandom(),
                                  dispatcher=FakeDispatcher(events, fail_on_tap=True))

    result = manager.like()

    assert result.success is False
    assert "tap failed" in result.error
    assert manager.current_interaction == InteractionType.NONE
    assert stats.get(InteractionMode.ACCOUNT_NURTURING).total == 0


def test_busy_flag_refuses_second_action(events, record_sleep):
    manager, _ = make_manager(FakeProbe(), events, record_sleep, ScriptedRandom())
    assert manager._begin(InteractionType.COMMENT)

    result = manager.like()

    assert result.error == "busy"
    assert events == []


def test_content_is_read_once_per_video(events, record_sleep):
    class Reader:
        calls = 0

        def read_bottom_text(self):
            Reader.calls += 1
            return "#猫# ocr"

    keywords = KeywordStore()
    cat = keywords.add("猫")
    manager, _ = make_manager(FakeProbe(), events, record_sleep, ScriptedRandom(),
                              keyword_store=keywords, text_reader=Reader())

    content = manager.load_content(EMPTY_SNAPSHOT)
    manager.load_content(EMPTY_SNAPSHOT)

    assert Reader.calls == 1
    assert content.text_info.hashtags == ["猫"]
    assert keywords.get(cat.id).match_count == 1

    manager.reset_video()
    manager.load_content(EMPTY_SNAPSHOT)
    assert Reader.calls == 2


def test_description_found_on_a_later_event(events, record_sleep):
    probe = FakeProbe()
    manager, _ = make_manager(probe, events, record_sleep, ScriptedRandom())

    assert manager.load_content(manager.redetect()) is None

    probe.roles[ElementRole.VIDEO_DESCRIPTION] = handle(0, 1500, 800, 1600, text="#日常# 散步")
    content = manager.load_content(manager.redetect())

    assert content is not None
    assert content.text_info.hashtags == ["日常"]


def test_ocr_miss_is_not_retried_for_the_same_video(events, record_sleep):
    class Reader:
        calls = 0

        def read_bottom_text(self):
            Reader.calls += 1
            return ""

    manager, _ = make_manager(FakeProbe(), events, record_sleep, ScriptedRandom(),
                              text_reader=Reader())

    manager.load_content(EMPTY_SNAPSHOT)
    manager.load_content(EMPTY_SNAPSHOT)
    assert Reader.calls == 1

    manager.reset_video()
    manager.load_content(EMPTY_SNAPSHOT)
    assert Reader.calls == 2


def test_cancelled_manager_starts_nothing_until_resumed(events, record_sleep):
    manager, _ = make_manager(FakeProbe(), events, record_sleep, ScriptedRandom())

    manager.cancel()
    assert manager.perform_random_interactions(EMPTY_SNAPSHOT) == []
    assert events == []

    manager.resume()
    results = manager.perform_random_interactions(EMPTY_SNAPSHOT)
    assert [r.interaction for r in results] == [InteractionType.LIKE]


def test_stopping_nurturing_mid_pass_ends_the_pass(events, clock):
    """Only the action in flight finishes: no further gate, pause or swipe."""
    probe = FakeProbe(
        roles={ElementRole.VIDEO_DESCRIPTION: handle(0, 1500, 800, 1600, text="日常")},
        texts={"推荐": FEED},
    )
    settings = InteractionSettings(like_probability=100, comment_probability=0,
                                   favorite_probability=100, follow_probability=0)
    schedulers = []

    def sleep(seconds):
        events.append(('sleep', seconds))
        # Stop from inside the like cooldown
        if seconds == Config.COOLDOWN_LIKE:
            schedulers[0].stop_mode(InteractionMode.ACCOUNT_NURTURING)

    scheduler = InteractionScheduler(probe, FakeDispatcher(events), settings,
                                     rng=ScriptedRandom(), clock=clock, sleep=sleep)
    schedulers.append(scheduler)
    scheduler.start_mode(InteractionMode.ACCOUNT_NURTURING)
    scheduler.handle_ui_event()

    clock.advance(6)
    scheduler.handle_ui_event()

    assert events == [fallback(Config.FEED_LIKE_POS), ('sleep', Config.COOLDOWN_LIKE)]
    assert scheduler.active_mode == InteractionMode.NONE
    stats = scheduler.get_stats(InteractionMode.ACCOUNT_NURTURING)
    assert (stats.like, stats.favorite, stats.videos_viewed) == (1, 0, 0)


def test_nurturing_runs_again_after_restart(events, record_sleep, clock):
    probe = FakeProbe(texts={"推荐": FEED})
    scheduler = InteractionScheduler(probe, FakeDispatcher(events), rng=ScriptedRandom(),
                                     clock=clock, sleep=record_sleep)
    scheduler.start_mode(InteractionMode.ACCOUNT_NURTURING)
    scheduler.stop_mode(InteractionMode.ACCOUNT_NURTURING)
    scheduler.start_mode(InteractionMode.ACCOUNT_NURTURING)
    scheduler.handle_ui_event()

    clock.advance(6)
    scheduler.handle_ui_event()

    assert fallback(Config.FEED_LIKE_POS) in events
    assert events[-1][0] == 'swipe'
