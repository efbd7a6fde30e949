import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .exceptions import DatasetError

LANGUAGE_CODES = ("kk", "tr", "uz", "ky", "tt", "az")

LANGUAGE_NAMES = {
    "kk": "Kazakh",
    "tr": "Turkish",
    "uz": "Uzbek",
    "ky": "Kyrgyz",
    "tt": "Tatar",
    "az": "Azerbaijani",
}

LEVELS = ("A1", "A2", "B1", "B2")

ORIGINS = ("proto-turkic", "arabic", "persian", "mixed")


@dataclass
class FormRow:
    native: str
    ipa: str
    latin: Optional[str] = None


@dataclass
class WordRow:
    id: int
    ru: str
    en: str
    pos: str
    frequency: int
    cognate_score: float
    origin: str
    forms: Dict[str, FormRow]
    level: str = "A1"


@dataclass
class WordsFile:
    version: str
    total_words: int
    words: List[WordRow] = field(default_factory=list)


def _parse_form(code: str, raw: Dict[str, Any]) -> FormRow:
    try:
        return FormRow(native=raw["native"], ipa=raw["ipa"], latin=raw.get("latin"))
    except KeyError as exc:
        raise DatasetError(f"Form '{code}' is missing {exc}", {"code": code}) from exc


def _parse_word(raw: Dict[str, Any]) -> WordRow:
    try:
        forms_raw = raw["forms"]
        missing = [code for code in LANGUAGE_CODES if code not in forms_raw]
        if missing:
            raise DatasetError(
                f"Word {raw.get('id')} has no forms for {', '.join(missing)}",
                {"id": raw.get("id"), "missing": missing},
            )
        return WordRow(
            id=int(raw["id"]),
            ru=raw["ru"],
            en=raw["en"],
            pos=raw["pos"],
            level=raw.get("level") or "A1",
            frequency=int(raw["frequency"]),
            cognate_score=float(raw["cognateScore"]),
            origin=raw["origin"],
            forms={code: _parse_form(code, forms_raw[code]) for code in LANGUAGE_CODES},
        )
    except KeyError as exc:
        raise DatasetError(f"Word entry is missing {exc}", {"id": raw.get("id")}) from exc
    except (TypeError, ValueError) as exc:
        raise DatasetError(f"Word {raw.get('id')} is malformed: {exc}", {"id": raw.get("id")}) from exc


def parse_words(data: Dict[str, Any]) -> WordsFile:
    """Build a WordsFile from an already-decoded dataset document."""
    if not isinstance(data, dict) or "words" not in data:
        raise DatasetError("Dataset has no 'words' array")
    words = [_parse_word(entry) for entry in data["words"]]
    return WordsFile(
        version=str(data.get("version", "")),
        total_words=int(data.get("totalWords", len(words))),
        words=words,
    )


def load_words_file(path: Union[str, Path]) -> WordsFile:
    """Read and parse a words JSON dataset."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except OSError as exc:
        raise DatasetError(f"Cannot read dataset {path}: {exc}", {"path": str(path)}) from exc
    except json.JSONDecodeError as exc:
        raise DatasetError(f"Dataset {path} is not valid JSON: {exc}", {"path": str(path)}) from exc
    return parse_words(data)
