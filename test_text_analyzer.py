"""Tests for hashtag/mention extraction and keyword matching."""
from text_analyzer import (
    HASHTAG_PATTERN,
    MENTION_PATTERN,
    Keyword,
    KeywordMatchResult,
    MatchType,
    analyze_description,
    calculate_match_score,
    extract_author_info,
    match_keywords,
)


def test_hashtags_and_mentions_in_first_seen_order():
    info = analyze_description("今天 #美食# 分享 #旅行# #美食# @小明 @xiao_hong @小明 好吃")

    assert info.hashtags == ["美食", "旅行"]
    assert info.mentions == ["小明", "xiao_hong"]
    assert info.original_text.startswith("今天")


def test_clean_text_has_no_tags_and_is_stable():
    info = analyze_description("#猫# 可爱的@主播 小猫 #日常#")

    assert not HASHTAG_PATTERN.search(info.clean_text)
    assert not MENTION_PATTERN.search(info.clean_text)
    assert "小猫" in info.clean_text
    assert analyze_description(info.clean_text).clean_text == info.clean_text


def test_empty_description():
    info = analyze_description("")
    assert info.hashtags == [] and info.mentions == [] and info.clean_text == ""


def test_blank_text_or_no_keywords_gives_zero_result():
    kw = Keyword(id=1, text="猫", boost_factor=10)

    for result in (match_keywords("", [kw]), match_keywords("   ", [kw]), match_keywords("猫", [])):
        assert not result.has_matches()
        assert result.like_boost == result.comment_boost == result.follow_boost == 0
        assert result.match_score == 0


def test_disabled_keywords_never_match():
    keywords = [
        Keyword(id=1, text="猫", boost_factor=10, enabled=False),
        Keyword(id=2, text="狗", boost_factor=5, enabled=False),
    ]
    result = match_keywords("猫和狗", keywords)

    assert result.matched_keywords == []
    assert result.match_score == 0


def test_match_is_case_insensitive_for_both_match_types():
    keywords = [
        Keyword(id=1, text="CATS", match_type=MatchType.EXACT),
        Keyword(id=2, text="dogs", match_type=MatchType.FUZZY),
    ]
    result = match_keywords("I love cats and DOGS", keywords)

    assert [k.id for k in result.matched_keywords] == [1, 2]
    assert (result.matches[0].start_index, result.matches[0].end_index) == (7, 11)
    assert (result.matches[1].start_index, result.matches[1].end_index) == (16, 20)


def test_boosts_use_overrides_and_priority():
    kw = Keyword(id=1, text="猫", boost_factor=10, priority=1, comment_boost=80)
    result = match_keywords("#猫# 视频", [kw])

    assert result.like_boost == 12
    assert result.comment_boost == 82
    assert result.follow_boost == 12


def test_blank_keyword_text_is_skipped():
    result = match_keywords("anything", [Keyword(id=1, text="  ", boost_factor=10)])
    assert not result.has_matches()


def test_match_score_formula():
    result = KeywordMatchResult(matched_keywords=[
        Keyword(id=1, text="a", priority=1, category="pets"),
        Keyword(id=2, text="b", priority=2, category="food"),
        Keyword(id=3, text="c", category="pets"),
    ])
    # 3*10 + (1+2)*5 + 2 categories*15
    assert calculate_match_score(result) == 75


def test_score_grows_with_more_matching_keywords():
    text = "猫 狗 鱼"
    keywords = [Keyword(id=i, text=t) for i, t in enumerate(["猫", "狗", "鱼"], 1)]

    scores = [match_keywords(text, keywords[:n]).match_score for n in range(1, 4)]

    assert scores == sorted(scores)
    assert scores[0] < scores[-1]


def test_extract_author_info():
    assert extract_author_info("作者 @alice 发布").username == "alice"
    assert extract_author_info("@bob").username == "bob"
    assert extract_author_info("no author").username == ""
