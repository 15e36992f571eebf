"""Tests for choice rendering, matching and text recognizers."""

import pytest

from palaver.dialogs.choices import (
    Channel,
    Choice,
    ChoiceFactory,
    ChoiceFactoryOptions,
    ChoiceRecognizers,
    Find,
    FindChoicesOptions,
    FindValuesOptions,
    SortedValue,
    Tokenizer,
    recognize_boolean,
    recognize_number,
    recognize_ordinal,
)
from palaver.models import ActionTypes, CardAction, HeroCard, InputHints

COLORS = ["red", "green", "blue"]


def values(results):
    return [r.resolution["value"] for r in results]


class TestTokenizer:
    def test_splits_on_whitespace_and_punctuation(self):
        tokens = Tokenizer.default_tokenizer("Hello, World!")

        assert [t.text for t in tokens] == ["Hello", "World"]
        assert [t.normalized for t in tokens] == ["hello", "world"]
        assert [(t.start, t.end) for t in tokens] == [(0, 4), (7, 11)]

    def test_astral_characters_are_own_tokens(self):
        tokens = Tokenizer.default_tokenizer("a\U0001F430b")
        assert [t.text for t in tokens] == ["a", "\U0001F430", "b"]

    def test_empty(self):
        assert Tokenizer.default_tokenizer("") == []
        assert Tokenizer.default_tokenizer(None) == []


class TestFind:
    """Tests for fuzzy value matching."""

    def test_find_choice_offsets(self):
        results = Find.find_choices("please add the red one", COLORS)

        assert len(results) == 1
        match = results[0]
        assert (match.start, match.end, match.text) == (15, 17, "red")
        assert match.type_name == "choice"
        assert match.resolution.value == "red"
        assert match.resolution.index == 0
        assert match.resolution.score == 1.0
        assert match.resolution.synonym == "red"

    def test_matches_synonyms_and_action_titles(self):
        choices = [
            Choice("small", synonyms=["tiny"]),
            Choice("large", action=CardAction(type=ActionTypes.IM_BACK, title="Huge", value="large")),
        ]

        assert Find.find_choices("a tiny one", choices)[0].resolution.value == "small"
        assert Find.find_choices("make it huge", choices)[0].resolution.value == "large"
        assert Find.find_choices("make it huge", choices, FindChoicesOptions(no_action=True)) == []
        assert Find.find_choices("small", choices, FindChoicesOptions(no_value=True)) == []

    def test_longer_value_wins_overlap(self):
        results = Find.find_choices("red apple please", ["red", "red apple"])

        assert [r.resolution.value for r in results] == ["red apple"]
        assert results[0].text == "red apple"

    def test_token_distance(self):
        values_to_find = [SortedValue(value="red apple", index=0)]

        loose = Find.find_values("red big juicy apple", values_to_find)
        strict = Find.find_values(
            "red big juicy apple", values_to_find, FindValuesOptions(max_token_distance=1)
        )

        assert loose[0].resolution.score == 0.5
        assert strict == []

    def test_partial_matches(self):
        values_to_find = [SortedValue(value="green tea latte", index=0)]

        assert Find.find_values("green latte", values_to_find) == []
        partial = Find.find_values(
            "green latte", values_to_find, FindValuesOptions(allow_partial_matches=True)
        )
        assert partial[0].resolution.index == 0
        assert partial[0].resolution.score < 1.0

    def test_multiple_choices_in_order(self):
        results = Find.find_choices("blue or red", COLORS)
        assert [r.resolution.value for r in results] == ["blue", "red"]

    def test_requires_choices(self):
        with pytest.raises(TypeError):
            Find.find_choices("x", None)
        with pytest.raises(TypeError):
            Find.find_values("x", None)


class TestChoiceRecognizers:
    """Tests for recognizing a picked choice."""

    @pytest.mark.parametrize(
        "utterance, expected",
        [
            ("green", "green"),
            ("2", "green"),
            ("two", "green"),
            ("the third one", "blue"),
            ("the last", "blue"),
            ("1st", "red"),
        ],
    )
    def test_recognizes(self, utterance, expected):
        results = ChoiceRecognizers.recognize_choices(utterance, COLORS)
        assert results[0].resolution.value == expected

    def test_out_of_range_index(self):
        assert ChoiceRecognizers.recognize_choices("5", COLORS) == []

    def test_number_recognition_can_be_disabled(self):
        options = FindChoicesOptions(recognize_numbers=False, recognize_ordinals=False)
        assert ChoiceRecognizers.recognize_choices("2", COLORS, options) == []
        assert ChoiceRecognizers.recognize_choices("second", COLORS, options) == []

    def test_requires_choices(self):
        with pytest.raises(TypeError):
            ChoiceRecognizers.recognize_choices("x", None)


class TestTextRecognizers:
    def test_digits_and_words(self):
        results = recognize_number("I have 1,000 apples and twenty-one pears")

        assert values(results) == ["1000", "21"]
        assert results[1].text == "twenty-one"

    @pytest.mark.parametrize(
        "text, expected",
        [
            ("one hundred and five", "105"),
            ("two thousand three hundred", "2300"),
            ("a dozen", "12"),
            ("-3.5", "-3.5"),
            ("42", "42"),
        ],
    )
    def test_number_values(self, text, expected):
        assert values(recognize_number(text)) == [expected]

    def test_adjacent_number_words_are_separate_numbers(self):
        results = recognize_number("one two twenty thirty-five")

        assert values(results) == ["1", "2", "20", "35"]
        assert [r.text for r in results] == ["one", "two", "twenty", "thirty-five"]

    def test_comma_decimal_culture(self):
        assert values(recognize_number("1.234,5", "de-de")) == ["1234.5"]
        assert recognize_number("zwei", "de-de") == []

    def test_no_numbers(self):
        assert recognize_number("") == []
        assert recognize_number("nothing here") == []

    def test_ordinals(self):
        assert values(recognize_ordinal("the 2nd and third")) == ["2", "3"]
        assert values(recognize_ordinal("twenty-first")) == ["21"]
        assert values(recognize_ordinal("the last one")) == ["end"]
        assert recognize_ordinal(None) == []

    @pytest.mark.parametrize(
        "text, culture, expected",
        [
            ("yes please", "en-us", True),
            ("No way", "en-us", False),
            ("ok", "en-us", True),
            ("oui", "fr-fr", True),
            ("nein", "de-de", False),
            ("是的", "zh-cn", True),
        ],
    )
    def test_boolean(self, text, culture, expected):
        assert values(recognize_boolean(text, culture)) == [expected]

    def test_boolean_without_answer(self):
        assert recognize_boolean("maybe") == []
        assert recognize_boolean("") == []


class TestChannel:
    def test_suggested_action_limits(self):
        assert Channel.supports_suggested_actions("facebook", 10)
        assert not Channel.supports_suggested_actions("facebook", 11)
        assert not Channel.supports_suggested_actions("msteams", 1)
        assert not Channel.supports_suggested_actions("unknown")

    def test_card_action_limits(self):
        assert Channel.supports_card_actions("msteams", 3)
        assert not Channel.supports_card_actions("msteams", 4)
        assert not Channel.supports_card_actions("sms")

    def test_misc(self, turn_context):
        assert not Channel.has_message_feed("cortana")
        assert Channel.has_message_feed("webchat")
        assert Channel.max_action_title_length("webchat") == 20
        assert Channel.get_channel_id(turn_context) == "test"


class TestChoiceFactory:
    """Tests for rendering choice lists."""

    def test_for_channel_picks_hero_card(self):
        activity = ChoiceFactory.for_channel("msteams", ["a", "b"], "Pick")
        assert activity.attachments[0].content_type == HeroCard.CONTENT_TYPE

    def test_for_channel_picks_suggested_actions(self):
        activity = ChoiceFactory.for_channel("webchat", ["a", "b"], "Pick")
        assert [a.title for a in activity.suggested_actions.actions] == ["a", "b"]
        assert activity.text == "Pick"

    def test_for_channel_falls_back_to_text(self):
        inline = ChoiceFactory.for_channel("test", COLORS, "Pick")
        listed = ChoiceFactory.for_channel("test", [*COLORS, "black"], "Pick")
        long_titles = ChoiceFactory.for_channel("webchat", ["x" * 25], "Pick")

        assert inline.text == "Pick (1) red, (2) green, or (3) blue"
        assert listed.text == "Pick\n\n   1. red\n   2. green\n   3. blue\n   4. black"
        assert long_titles.text == "Pick (1) " + "x" * 25

    def test_inline_options(self):
        options = ChoiceFactoryOptions(include_numbers=False)
        activity = ChoiceFactory.inline(COLORS, "Pick", options=options)

        assert activity.text == "Pick red, green, or blue"
        assert activity.input_hint == InputHints.EXPECTING_INPUT

    def test_inline_two_choices(self):
        assert ChoiceFactory.inline(["a", "b"], "Pick").text == "Pick (1) a or (2) b"

    def test_list_style(self):
        bulleted = ChoiceFactory.list_style(["a", "b"], "Pick", options=ChoiceFactoryOptions(include_numbers=False))
        untitled = ChoiceFactory.list_style(["a", "b"])

        assert bulleted.text == "Pick\n\n   - a\n   - b"
        assert untitled.text == "1. a\n   2. b"

    def test_action_title_used_for_display(self):
        choice = Choice("v", action=CardAction(type=ActionTypes.IM_BACK, title="Title", value="v"))

        assert ChoiceFactory.inline([choice], "Pick").text == "Pick (1) Title"
        assert ChoiceFactory.extract_actions([choice])[0] is choice.action

    def test_extract_actions_defaults_to_im_back(self):
        actions = ChoiceFactory.extract_actions(["a"])
        assert actions[0].type == ActionTypes.IM_BACK
        assert actions[0].value == "a"
        assert ChoiceFactory.to_choices(None) == []
