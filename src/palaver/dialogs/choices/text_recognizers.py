"""Number, ordinal and yes/no recognition over free text.

English number and ordinal words are understood; other cultures get digit
recognition with their own decimal and thousands separators. Boolean
recognition knows the yes/no words of every supported prompt culture.
"""

import re

from .models import ModelResult

# Cultures that write 1.234,5 rather than 1,234.5
_COMMA_DECIMAL_LANGUAGES = {"bg", "de", "es", "fr", "it", "nl", "pt", "sv", "tr"}

_POINT_DECIMAL_NUMBER = re.compile(r"(?<![\w.,])[-+]?(?:\d{1,3}(?:,\d{3})+|\d+)(?:\.\d+)?(?!\w)")
_COMMA_DECIMAL_NUMBER = re.compile(r"(?<![\w.,])[-+]?(?:\d{1,3}(?:\.\d{3})+|\d+)(?:,\d+)?(?!\w)")
_DIGIT_ORDINAL = re.compile(r"(?<!\w)(\d+)(?:st|nd|rd|th)(?!\w)", re.IGNORECASE)
_WORD = re.compile(r"[a-z]+(?:-[a-z]+)*")

_UNITS = {
    "zero": 0, "one": 1, "two": 2, "three": 3, "four": 4, "five": 5, "six": 6,
    "seven": 7, "eight": 8, "nine": 9, "ten": 10, "eleven": 11, "twelve": 12,
    "thirteen": 13, "fourteen": 14, "fifteen": 15, "sixteen": 16,
    "seventeen": 17, "eighteen": 18, "nineteen": 19, "dozen": 12,
}
_TENS = {
    "twenty": 20, "thirty": 30, "forty": 40, "fifty": 50,
    "sixty": 60, "seventy": 70, "eighty": 80, "ninety": 90,
}
_SCALES = {"thousand": 1_000, "million": 1_000_000, "billion": 1_000_000_000}

_ORDINAL_UNITS = {
    "first": 1, "second": 2, "third": 3, "fourth": 4, "fifth": 5, "sixth": 6,
    "seventh": 7, "eighth": 8, "ninth": 9, "tenth": 10, "eleventh": 11,
    "twelfth": 12, "thirteenth": 13, "fourteenth": 14, "fifteenth": 15,
    "sixteenth": 16, "seventeenth": 17, "eighteenth": 18, "nineteenth": 19,
}
_ORDINAL_TENS = {
    "twentieth": 20, "thirtieth": 30, "fortieth": 40, "fiftieth": 50,
    "sixtieth": 60, "seventieth": 70, "eightieth": 80, "ninetieth": 90,
}

_YES_WORDS = {
    "en": {"yes", "y", "yep", "yeah", "yup", "sure", "ok", "okay", "true", "correct", "affirmative"},
    "bg": {"да"},
    "zh": {"是的", "是", "好"},
    "nl": {"ja"},
    "fr": {"oui"},
    "de": {"ja"},
    "hi": {"हां"},
    "it": {"si", "sì"},
    "ja": {"はい"},
    "ko": {"예", "네"},
    "pt": {"sim"},
    "es": {"sí", "si"},
    "sv": {"ja"},
    "tr": {"evet"},
}
_NO_WORDS = {
    "en": {"no", "n", "nope", "nah", "false", "negative", "incorrect"},
    "bg": {"не"},
    "zh": {"不", "不是"},
    "nl": {"nee"},
    "fr": {"non"},
    "de": {"nein"},
    "hi": {"नहीं"},
    "it": {"no"},
    "ja": {"いいえ"},
    "ko": {"아니", "아니요"},
    "pt": {"não", "nao"},
    "es": {"no"},
    "sv": {"nej"},
    "tr": {"hayır", "hayir"},
}


def _language(culture: str | None) -> str:
    return (culture or "en-us").lower().split("-")[0]


def _format_number(value: float | int) -> str:
    if isinstance(value, float) and not value.is_integer():
        return repr(value)
    return str(int(value))


def _digit_numbers(text: str, culture: str | None) -> list[ModelResult[dict]]:
    comma_decimal = _language(culture) in _COMMA_DECIMAL_LANGUAGES
    pattern = _COMMA_DECIMAL_NUMBER if comma_decimal else _POINT_DECIMAL_NUMBER
    thousands, decimal = (".", ",") if comma_decimal else (",", ".")

    results = []
    for match in pattern.finditer(text):
        raw = match.group(0)
        normalized = raw.replace(thousands, "").replace(decimal, ".")
        value: float | int = float(normalized) if "." in normalized else int(normalized)
        results.append(
            ModelResult(
                start=match.start(),
                end=match.end() - 1,
                type_name="number",
                text=raw,
                resolution={"value": _format_number(value)},
            )
        )
    return results


def _word_spans(text: str) -> list[tuple[str, int, int]]:
    spans = []
    for match in _WORD.finditer(text.lower()):
        for part in _split_hyphenated(match):
            spans.append(part)
    return spans


def _split_hyphenated(match: re.Match) -> list[tuple[str, int, int]]:
    word = match.group(0)
    if "-" not in word:
        return [(word, match.start(), match.end() - 1)]
    parts = []
    offset = match.start()
    for piece in word.split("-"):
        parts.append((piece, offset, offset + len(piece) - 1))
        offset += len(piece) + 1
    return parts


def _english_numbers(text: str) -> list[ModelResult[dict]]:
    results = []
    words = _word_spans(text)
    index = 0
    while index < len(words):
        word, start, _ = words[index]
        if word not in _UNITS and word not in _TENS:
            index += 1
            continue

        total = 0
        current = 0
        end = start
        previous = None
        while index < len(words):
            word, _, word_end = words[index]
            if word in _UNITS:
                # "one two" is two numbers; "twenty one" is one.
                if previous == "unit" or (previous == "tens" and _UNITS[word] >= 10):
                    break
                current += _UNITS[word]
                previous = "unit"
            elif word in _TENS:
                if previous in ("unit", "tens"):
                    break
                current += _TENS[word]
                previous = "tens"
            elif word == "hundred":
                current = (current or 1) * 100
                previous = "hundred"
            elif word in _SCALES:
                total += (current or 1) * _SCALES[word]
                current = 0
                previous = "scale"
            elif word == "and" and index + 1 < len(words) and _is_number_word(words[index + 1][0]):
                index += 1
                continue
            else:
                break
            end = word_end
            index += 1

        results.append(
            ModelResult(
                start=start,
                end=end,
                type_name="number",
                text=text[start : end + 1],
                resolution={"value": str(total + current)},
            )
        )
    return results


def _is_number_word(word: str) -> bool:
    return word in _UNITS or word in _TENS or word == "hundred" or word in _SCALES


def recognize_number(text: str | None, culture: str | None = "en-us") -> list[ModelResult[dict]]:
    """Find numbers in text.

    Returns:
        Matches in order of appearance; `resolution["value"]` holds the number
        as a string, e.g. ``"42"`` or ``"3.5"``.
    """
    if not text:
        return []
    results = _digit_numbers(text, culture)
    if _language(culture) == "en":
        taken = {i for r in results for i in range(r.start, r.end + 1)}
        for match in _english_numbers(text):
            if not any(i in taken for i in range(match.start, match.end + 1)):
                results.append(match)
    results.sort(key=lambda r: r.start)
    return results


def recognize_ordinal(text: str | None, culture: str | None = "en-us") -> list[ModelResult[dict]]:
    """Find ordinals such as "2nd", "third" or "last" in text.

    "last" resolves to the value ``"end"``, meaning the final item of a list.
    """
    if not text:
        return []

    results = []
    for match in _DIGIT_ORDINAL.finditer(text):
        results.append(
            ModelResult(
                start=match.start(),
                end=match.end() - 1,
                type_name="ordinal",
                text=match.group(0),
                resolution={"value": str(int(match.group(1)))},
            )
        )

    if _language(culture) == "en":
        words = _word_spans(text)
        index = 0
        while index < len(words):
            word, start, end = words[index]
            value: str | None = None
            if word == "last":
                value = "end"
            elif word in _ORDINAL_UNITS:
                value = str(_ORDINAL_UNITS[word])
            elif word in _ORDINAL_TENS:
                value = str(_ORDINAL_TENS[word])
            elif word in _TENS and index + 1 < len(words) and words[index + 1][0] in _ORDINAL_UNITS:
                next_word, _, end = words[index + 1]
                if _ORDINAL_UNITS[next_word] < 10:
                    value = str(_TENS[word] + _ORDINAL_UNITS[next_word])
                    index += 1
            if value is not None:
                results.append(
                    ModelResult(
                        start=start,
                        end=end,
                        type_name="ordinal",
                        text=text[start : end + 1],
                        resolution={"value": value},
                    )
                )
            index += 1

    results.sort(key=lambda r: r.start)
    return results


def recognize_boolean(text: str | None, culture: str | None = "en-us") -> list[ModelResult[dict]]:
    """Find yes/no answers in text.

    Returns:
        Matches whose `resolution["value"]` is True or False.
    """
    if not text:
        return []

    language = _language(culture)
    yes_words = _YES_WORDS.get(language, set()) | _YES_WORDS["en"]
    no_words = _NO_WORDS.get(language, set()) | _NO_WORDS["en"]

    results = []
    for match in re.finditer(r"\w+", text.lower()):
        word = match.group(0)
        if word in yes_words or word in no_words:
            results.append(
                ModelResult(
                    start=match.start(),
                    end=match.end() - 1,
                    type_name="boolean",
                    text=text[match.start() : match.end()],
                    resolution={"value": word in yes_words},
                )
            )
    if not results:
        # Scripts without word breaks, e.g. "是的" inside a sentence.
        lowered = text.lower()
        for words, value in ((yes_words, True), (no_words, False)):
            for word in sorted(words, key=len, reverse=True):
                position = lowered.find(word)
                if position >= 0 and not word.isascii():
                    results.append(
                        ModelResult(
                            start=position,
                            end=position + len(word) - 1,
                            type_name="boolean",
                            text=text[position : position + len(word)],
                            resolution={"value": value},
                        )
                    )
                    break
    results.sort(key=lambda r: r.start)
    return results
