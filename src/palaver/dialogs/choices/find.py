"""Fuzzy matching of utterances against choice values and synonyms."""

from .models import (
    Choice,
    FindChoicesOptions,
    FindValuesOptions,
    FoundChoice,
    FoundValue,
    ModelResult,
    SortedValue,
    Token,
)
from .tokenizer import Tokenizer


class Find:
    @staticmethod
    def find_choices(
        utterance: str,
        choices: list[Choice | str],
        options: FindChoicesOptions | None = None,
    ) -> list[ModelResult[FoundChoice]]:
        """Find the choices mentioned in an utterance.

        Each choice is matched by its value, its action title and its
        synonyms, unless excluded by `options`.
        """
        if choices is None:
            raise TypeError("Find.find_choices(): choices cannot be None")

        opt = options or FindChoicesOptions()
        choices_list = [Choice(value=c) if isinstance(c, str) else c for c in choices]

        synonyms: list[SortedValue] = []
        for index, choice in enumerate(choices_list):
            if not opt.no_value:
                synonyms.append(SortedValue(value=choice.value, index=index))
            if choice.action is not None and choice.action.title and not opt.no_action:
                synonyms.append(SortedValue(value=choice.action.title, index=index))
            for synonym in choice.synonyms or []:
                synonyms.append(SortedValue(value=synonym, index=index))

        results = []
        for match in Find.find_values(utterance, synonyms, opt):
            choice = choices_list[match.resolution.index]
            results.append(
                ModelResult(
                    start=match.start,
                    end=match.end,
                    type_name="choice",
                    text=match.text,
                    resolution=FoundChoice(
                        value=choice.value,
                        index=match.resolution.index,
                        score=match.resolution.score,
                        synonym=match.resolution.value,
                    ),
                )
            )
        return results

    @staticmethod
    def find_values(
        utterance: str,
        values: list[SortedValue],
        options: FindValuesOptions | None = None,
    ) -> list[ModelResult[FoundValue]]:
        """Find values in an utterance.

        Longer values are searched first. Overlapping matches are resolved in
        favour of the higher score, and each value index is returned once.
        """
        if values is None:
            raise TypeError("Find.find_values(): values cannot be None")

        ordered = sorted(values, key=lambda v: len(v.value), reverse=True)
        opt = options or FindValuesOptions()
        tokenizer = opt.tokenizer or Tokenizer.default_tokenizer
        tokens = tokenizer(utterance, opt.locale)
        max_distance = opt.max_token_distance

        matches: list[ModelResult[FoundValue]] = []
        for entry in ordered:
            start_pos = 0
            searched_tokens = tokenizer(entry.value.strip(), opt.locale)
            while start_pos < len(tokens):
                match = Find._match_value(
                    tokens, max_distance, opt, entry.index, entry.value, searched_tokens, start_pos
                )
                if match is None:
                    break
                start_pos = match.end + 1
                matches.append(match)

        matches.sort(key=lambda m: m.resolution.score, reverse=True)

        results = []
        found_indexes: set[int] = set()
        used_tokens: set[int] = set()
        for match in matches:
            span = range(match.start, match.end + 1)
            if match.resolution.index in found_indexes or any(i in used_tokens for i in span):
                continue
            found_indexes.add(match.resolution.index)
            used_tokens.update(span)

            # Token positions become character offsets into the utterance.
            match.start = tokens[match.start].start
            match.end = tokens[match.end].end
            match.text = utterance[match.start : match.end + 1]
            results.append(match)

        results.sort(key=lambda m: m.start)
        return results

    @staticmethod
    def _index_of_token(tokens: list[Token], token: Token, start_pos: int) -> int:
        for index in range(start_pos, len(tokens)):
            if tokens[index].normalized == token.normalized:
                return index
        return -1

    @staticmethod
    def _match_value(
        source_tokens: list[Token],
        max_distance: int,
        options: FindValuesOptions,
        index: int,
        value: str,
        searched_tokens: list[Token],
        start_pos: int,
    ) -> ModelResult[FoundValue] | None:
        matched = 0
        total_deviation = 0
        start = -1
        end = -1
        for token in searched_tokens:
            pos = Find._index_of_token(source_tokens, token, start_pos)
            if pos < 0:
                continue
            distance = pos - start_pos if matched > 0 else 0
            if distance <= max_distance:
                matched += 1
                total_deviation += distance
                start_pos = pos + 1
                if start < 0:
                    start = pos
                end = pos

        if matched == 0 or (matched != len(searched_tokens) and not options.allow_partial_matches):
            return None

        completeness = matched / len(searched_tokens)
        accuracy = matched / (matched + total_deviation)
        return ModelResult(
            start=start,
            end=end,
            type_name="value",
            text="",
            resolution=FoundValue(value=value, index=index, score=completeness * accuracy),
        )
