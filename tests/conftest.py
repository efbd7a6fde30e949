import json
from typing import Any, Callable, Dict, List, Optional

import pytest

from learn_turkic.structured import LANGUAGE_CODES


def word_payload(word_id: int, frequency: int, level: Optional[str] = "A1",
                 origin: str = "proto-turkic", native: str = "su") -> Dict[str, Any]:
    forms = {code: {"native": native, "ipa": native} for code in LANGUAGE_CODES}
    forms["kk"]["latin"] = native
    payload: Dict[str, Any] = {
        "id": word_id,
        "ru": f"слово {word_id}",
        "en": f"word {word_id}",
        "pos": "noun",
        "frequency": frequency,
        "cognateScore": 1.0,
        "origin": origin,
        "forms": forms,
    }
    if level is not None:
        payload["level"] = level
    return payload


@pytest.fixture
def write_dataset(tmp_path) -> Callable[[List[Dict[str, Any]]], str]:
    """Write a words JSON file and return its path."""
    def _write(words: List[Dict[str, Any]], name: str = "words.json") -> str:
        path = tmp_path / name
        path.write_text(
            json.dumps({"version": "test", "totalWords": len(words), "words": words}, ensure_ascii=False),
            encoding="utf-8",
        )
        return str(path)
    return _write
