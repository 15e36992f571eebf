"""Per-culture wording used when rendering prompts."""

from dataclasses import dataclass


@dataclass(frozen=True)
class PromptCultureModel:
    locale: str
    separator: str
    inline_or: str
    inline_or_more: str
    yes_in_language: str
    no_in_language: str

    @property
    def inline_separator(self) -> str:
        return self.separator


class PromptCultureModels:
    BULGARIAN_CULTURE = "bg-bg"
    CHINESE_CULTURE = "zh-cn"
    DUTCH_CULTURE = "nl-nl"
    ENGLISH_CULTURE = "en-us"
    FRENCH_CULTURE = "fr-fr"
    GERMAN_CULTURE = "de-de"
    HINDI_CULTURE = "hi-in"
    ITALIAN_CULTURE = "it-it"
    JAPANESE_CULTURE = "ja-jp"
    KOREAN_CULTURE = "ko-kr"
    PORTUGUESE_CULTURE = "pt-br"
    SPANISH_CULTURE = "es-es"
    SWEDISH_CULTURE = "sv-se"
    TURKISH_CULTURE = "tr-tr"

    BULGARIAN = PromptCultureModel(BULGARIAN_CULTURE, ", ", " или ", ", или ", "да", "Не")
    CHINESE = PromptCultureModel(CHINESE_CULTURE, "， ", " 要么 ", "， 要么 ", "是的", "不")
    DUTCH = PromptCultureModel(DUTCH_CULTURE, ", ", " of ", ", of ", "Ja", "Nee")
    ENGLISH = PromptCultureModel(ENGLISH_CULTURE, ", ", " or ", ", or ", "Yes", "No")
    FRENCH = PromptCultureModel(FRENCH_CULTURE, ", ", " ou ", ", ou ", "Oui", "Non")
    GERMAN = PromptCultureModel(GERMAN_CULTURE, ", ", " oder ", ", oder ", "Ja", "Nein")
    HINDI = PromptCultureModel(HINDI_CULTURE, ", ", " या ", ", या ", "हां", "नहीं")
    ITALIAN = PromptCultureModel(ITALIAN_CULTURE, ", ", " o ", " o ", "Si", "No")
    JAPANESE = PromptCultureModel(JAPANESE_CULTURE, "、 ", " または ", "、 または ", "はい", "いいえ")
    KOREAN = PromptCultureModel(KOREAN_CULTURE, ", ", " 또는 ", " 또는 ", "예", "아니")
    PORTUGUESE = PromptCultureModel(PORTUGUESE_CULTURE, ", ", " ou ", ", ou ", "Sim", "Não")
    SPANISH = PromptCultureModel(SPANISH_CULTURE, ", ", " o ", ", o ", "Sí", "No")
    SWEDISH = PromptCultureModel(SWEDISH_CULTURE, ", ", " eller ", " eller ", "Ja", "Nej")
    TURKISH = PromptCultureModel(TURKISH_CULTURE, ", ", " veya ", " veya ", "Evet", "Hayır")

    @classmethod
    def get_supported_cultures(cls) -> list[PromptCultureModel]:
        return [
            cls.BULGARIAN,
            cls.CHINESE,
            cls.DUTCH,
            cls.ENGLISH,
            cls.FRENCH,
            cls.GERMAN,
            cls.HINDI,
            cls.ITALIAN,
            cls.JAPANESE,
            cls.KOREAN,
            cls.PORTUGUESE,
            cls.SPANISH,
            cls.SWEDISH,
            cls.TURKISH,
        ]

    @classmethod
    def map_to_nearest_language(cls, culture_code: str | None) -> str | None:
        """Map a locale like ``en-gb`` or ``fr`` onto a supported culture.

        Codes with no supported language are returned lowercased.
        """
        if not culture_code:
            return culture_code

        culture_code = culture_code.lower()
        supported = [model.locale for model in cls.get_supported_cultures()]
        if culture_code in supported:
            return culture_code

        language = culture_code.split("-")[0]
        for locale in supported:
            if locale.split("-")[0] == language:
                return locale
        return culture_code
