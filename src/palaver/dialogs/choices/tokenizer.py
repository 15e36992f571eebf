"""Simple tokenizer used to match choices against utterances."""

from .models import Token

_BREAKING_RANGES = (
    (0x0000, 0x002F),
    (0x003A, 0x0040),
    (0x005B, 0x0060),
    (0x007B, 0x00BF),
    (0x02B9, 0x036F),
    (0x2000, 0x2BFF),
    (0x2E00, 0x2E7F),
)


def _is_breaking_char(code_point: int) -> bool:
    return any(low <= code_point <= high for low, high in _BREAKING_RANGES)


class Tokenizer:
    @staticmethod
    def default_tokenizer(text: str | None, locale: str | None = None) -> list[Token]:
        """Split text on whitespace and punctuation.

        Characters outside the Basic Multilingual Plane (emoji and the like)
        become tokens of their own. Tokens are normalized to lower case.

        Args:
            text: Text to tokenize.
            locale: Unused by the default tokenizer.

        Returns:
            Tokens in order of appearance.
        """
        tokens: list[Token] = []
        token: Token | None = None

        def append_token(end: int) -> None:
            if token is not None:
                token.end = end
                token.normalized = token.text.lower()
                tokens.append(token)

        text = text or ""
        for index, char in enumerate(text):
            code_point = ord(char)
            if _is_breaking_char(code_point):
                append_token(index - 1)
                token = None
            elif code_point > 0xFFFF:
                append_token(index - 1)
                token = None
                tokens.append(Token(start=index, end=index, text=char, normalized=char))
            elif token is None:
                token = Token(start=index, text=char)
            else:
                token.text += char

        append_token(len(text) - 1)
        return tokens
