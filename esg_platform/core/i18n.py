"""
Internationalisation: JSON message catalogues per language and namespace,
request language detection and lookup of `namespace:key` messages.
"""
import json
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from fastapi import Request

SUPPORTED_LANGUAGES: Tuple[str, ...] = ("pl", "en")
FALLBACK_LANGUAGE = "pl"
NAMESPACES: Tuple[str, ...] = ("translation", "errors", "validation")
DEFAULT_NAMESPACE = "translation"

LANGUAGE_COOKIE = "i18next"
LANGUAGE_QUERY_PARAM = "lng"

LOCALES_DIR = Path(__file__).resolve().parent.parent / "locales"


def parse_accept_language(header: str) -> List[str]:
    """
    Returns the primary language subtags of an Accept-Language header ordered by quality.
    'en-US,en;q=0.9,pl;q=0.8' -> ['en', 'en', 'pl']
    """
    weighted: List[Tuple[float, int, str]] = []
    for position, part in enumerate(header.split(",")):
        tag, _, params = part.strip().partition(";")
        tag = tag.strip().lower()
        if not tag or tag == "*":
            continue
        quality = 1.0
        params = params.strip()
        if params.startswith("q="):
            try:
                quality = float(params[2:])
            except ValueError:
                quality = 0.0
        if quality <= 0:
            continue
        weighted.append((-quality, position, tag.split("-")[0]))
    return [language for _, _, language in sorted(weighted)]


class Translator:
    """Message catalogues loaded from `<locales_dir>/<language>/<namespace>.json`."""

    def __init__(
        self,
        locales_dir: Path = LOCALES_DIR,
        languages: Iterable[str] = SUPPORTED_LANGUAGES,
        fallback: str = FALLBACK_LANGUAGE,
    ):
        self.languages = tuple(languages)
        self.fallback = fallback
        self.catalogues: Dict[str, Dict[str, Dict[str, str]]] = {}

        for language in self.languages:
            self.catalogues[language] = {}
            for namespace in NAMESPACES:
                path = Path(locales_dir) / language / f"{namespace}.json"
                if path.is_file():
                    with path.open(encoding="utf-8") as handle:
                        self.catalogues[language][namespace] = json.load(handle)

    def resolve_language(self, candidate: Optional[str]) -> Optional[str]:
        if not candidate:
            return None
        language = candidate.strip().lower().split("-")[0]
        return language if language in self.languages else None

    def detect_language(self, request: Request) -> str:
        """Detection order: Accept-Language header, query string, cookie, fallback."""
        for candidate in parse_accept_language(request.headers.get("accept-language", "")):
            language = self.resolve_language(candidate)
            if language:
                return language

        for candidate in (
            request.query_params.get(LANGUAGE_QUERY_PARAM),
            request.cookies.get(LANGUAGE_COOKIE),
        ):
            language = self.resolve_language(candidate)
            if language:
                return language

        return self.fallback

    def translate(self, key: str, language: Optional[str] = None, **params: object) -> str:
        """
        Looks up `namespace:key` (or `key` in the default namespace) in the requested
        language, then the fallback language. Unknown keys are returned as-is.
        Placeholders are written `{{name}}`.
        """
        namespace, _, name = key.rpartition(":")
        namespace = namespace or DEFAULT_NAMESPACE

        message = None
        for lang in (language or self.fallback, self.fallback):
            message = self.catalogues.get(lang, {}).get(namespace, {}).get(name)
            if message is not None:
                break
        if message is None:
            return key

        for placeholder, value in params.items():
            message = message.replace("{{" + placeholder + "}}", str(value))
        return message


def translate_request(request: Request, key: str, **params: object) -> str:
    """Translates a message into the language detected for the current request."""
    translator: Translator = request.app.state.translator
    language = getattr(request.state, "language", None)
    return translator.translate(key, language, **params)
