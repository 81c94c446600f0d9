"""Shared fakes and fixtures for the codeguide test suite."""
import json
import sys
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence

import pytest

# add project root to sys.path
ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from codeguide.generation import ChatResult  # noqa: E402
from codeguide.models import Document, EmbeddedDocument  # noqa: E402
from codeguide.schemas import Citation  # noqa: E402


class FakeEmbedder:
    """Embedding capability that records calls.

    Texts containing a key of `keyword_vectors` get that vector; others get `default`.
    """

    def __init__(
        self,
        keyword_vectors: Optional[Dict[str, List[float]]] = None,
        default: Optional[List[float]] = None,
        fail_on_call: Optional[int] = None,
    ):
        self.keyword_vectors = keyword_vectors or {}
        self.default = default or [0.0, 0.0, 1.0]
        self.fail_on_call = fail_on_call
        self.calls: List[tuple] = []

    async def embed(self, texts: List[str], input_type: str) -> List[List[float]]:
        self.calls.append((list(texts), input_type))
        if self.fail_on_call is not None and len(self.calls) == self.fail_on_call:
            raise RuntimeError("embedding provider unavailable")
        out = []
        for t in texts:
            vec = self.default
            for key, v in self.keyword_vectors.items():
                if key in t:
                    vec = v
                    break
            out.append(list(vec))
        return out


class FakeChat:
    """Chat capability that records calls and returns a canned result."""

    def __init__(self, text: str = "answer", citations: Optional[List[Citation]] = None, fail: bool = False):
        self.text = text
        self.citations = citations or []
        self.fail = fail
        self.calls: List[dict] = []

    async def chat(
        self,
        message: str,
        documents: Sequence[Mapping[str, str]],
        preamble: str,
        temperature: float,
    ) -> ChatResult:
        self.calls.append(
            {"message": message, "documents": list(documents), "preamble": preamble, "temperature": temperature}
        )
        if self.fail:
            raise RuntimeError("chat provider unavailable")
        return ChatResult(text=self.text, citations=list(self.citations))


def embedded(doc_id: str, embedding: Sequence[float], title: str = "", snippet: str = "") -> EmbeddedDocument:
    return EmbeddedDocument(
        document=Document(id=doc_id, title=title or doc_id, snippet=snippet or f"about {doc_id}"),
        embedding=tuple(float(x) for x in embedding),
    )


SAMPLE_CATALOGS = {
    "api_patterns.json": {
        "api_styles": [
            {
                "name": "REST",
                "description": "Resource oriented HTTP APIs.",
                "best_use_cases": ["CRUD services", "public APIs"],
                "strengths": ["cacheability", "simplicity"],
            },
            {
                "name": "GraphQL",
                "description": "Client-shaped queries over a typed schema.",
                "best_use_cases": ["mobile clients"],
                "strengths": ["flexible queries"],
            },
        ]
    },
    "architectures.json": {
        "architectures": [
            {
                "architecture_name": "Event Driven",
                "description": "Components communicate through events.",
                "project_types": ["streaming pipelines", "notifications"],
                "strengths": ["loose coupling", "scalability"],
            }
        ]
    },
    "design_patterns.json": {
        "design_patterns": [
            {
                "category": "Creational",
                "patterns": [
                    {
                        "name": "Factory Method",
                        "description": "Defer instantiation to subclasses",
                        "problem_it_solves": "creating objects without naming concrete classes",
                    },
                    {
                        "name": "Builder",
                        "description": "Construct complex objects step by step",
                        "problem_it_solves": "telescoping constructors",
                    },
                ],
            },
            {
                "category": "Behavioral",
                "patterns": [
                    {
                        "name": "Observer",
                        "description": "Notify dependents of state changes",
                        "problem_it_solves": "keeping views in sync with a model",
                    }
                ],
            },
        ]
    },
    "dsa.json": {
        "data_structures_and_algorithms": [
            {
                "name": "Hash Map",
                "description": "Key-value store with average O(1) lookup.",
                "how_it_is_used": "caching and indexing",
                "project_applications": [
                    {"project": "URL shortener", "application": "map short codes to URLs"},
                    {"project": "word counter", "application": "count word frequencies"},
                ],
            }
        ]
    },
    "languages.json": {
        "programming_languages": [
            {
                "name": "Go",
                "known_for": "concurrency",
                "ideal_for": "services",
                "strengths": ["speed", "simplicity"],
                "paradigms": ["imperative"],
                "typing": "static",
            }
        ]
    },
    "projects.json": [
        {
            "category": "Web",
            "project_ideas": [
                {
                    "name": "Todo App",
                    "description": "A classic task tracker.",
                    "languages": ["JavaScript", "Python"],
                    "difficulty": "Beginner",
                }
            ],
        }
    ],
}

SAMPLE_IDS = [
    "api_REST",
    "api_GraphQL",
    "arch_Event_Driven",
    "pattern_Factory_Method",
    "pattern_Builder",
    "pattern_Observer",
    "dsa_Hash_Map",
    "lang_Go",
    "project_Todo_App",
]


def write_json(path: Path, data) -> Path:
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


@pytest.fixture
def catalog_dir(tmp_path: Path) -> Path:
    """Directory holding the six sample catalogs."""
    d = tmp_path / "documents"
    d.mkdir()
    for name, data in SAMPLE_CATALOGS.items():
        write_json(d / name, data)
    return d


@pytest.fixture
def catalog_paths(catalog_dir: Path) -> List[Path]:
    return [catalog_dir / name for name in SAMPLE_CATALOGS]
