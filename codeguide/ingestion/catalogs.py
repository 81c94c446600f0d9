"""Catalog normalizers: project curated JSON catalogs into uniform Documents.

Each known catalog shape has one normalizer implementing normalize(raw) -> List[Document].
The registry below maps a parsed catalog to its normalizer by its top-level shape:

- api_styles                      -> api_<name>      (ApiStyleCatalog)
- architectures                   -> arch_<name>     (ArchitectureCatalog)
- design_patterns                 -> pattern_<name>  (DesignPatternCatalog)
- data_structures_and_algorithms  -> dsa_<name>      (AlgorithmCatalog)
- programming_languages           -> lang_<name>     (LanguageCatalog)
- [ {category, project_ideas} ]   -> project_<name>  (ProjectIdeaCatalog)

load_documents() reads the configured source files in order. A missing, unparseable or
unrecognized file is logged and contributes zero documents; the other files still load.
Ids are unique across the loaded corpus: a repeated id gets a "_2", "_3", ... suffix in
file then entry order.
"""
from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, Iterable, List, Sequence, Tuple, Union

from codeguide.models import Document
from codeguide.utils import join_values, stable_doc_id

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class CatalogFormatError(ValueError):
    """Raised when a parsed source file matches none of the known catalog shapes."""


class CatalogNormalizer:
    """Base normalizer for one catalog shape.

    Subclasses set `key` (the top-level key identifying the shape) and `prefix`
    (the document id prefix), and implement `normalize`.
    """
    key: str = ""
    prefix: str = ""

    def matches(self, raw: Any) -> bool:
        return isinstance(raw, dict) and self.key in raw

    def normalize(self, raw: Any) -> List[Document]:
        raise NotImplementedError

    def _doc(self, name: str, title: str, snippet: str) -> Document:
        return Document(id=stable_doc_id(self.prefix, name), title=title, snippet=snippet)


class ApiStyleCatalog(CatalogNormalizer):
    key = "api_styles"
    prefix = "api"

    def normalize(self, raw: Dict[str, Any]) -> List[Document]:
        out: List[Document] = []
        for style in raw[self.key]:
            snippet = (
                f"{style['description']} Best use cases: {join_values(style['best_use_cases'])}. "
                f"Strengths include: {join_values(style['strengths'])}."
            )
            out.append(self._doc(style["name"], f"{style['name']} API Style", snippet))
        return out


class ArchitectureCatalog(CatalogNormalizer):
    key = "architectures"
    prefix = "arch"

    def normalize(self, raw: Dict[str, Any]) -> List[Document]:
        out: List[Document] = []
        for arch in raw[self.key]:
            name = arch["architecture_name"]
            snippet = (
                f"{arch['description']} This architecture is suitable for projects like "
                f"{join_values(arch['project_types'])}. Key strengths are: {join_values(arch['strengths'])}."
            )
            out.append(self._doc(name, f"{name} Architecture", snippet))
        return out


class DesignPatternCatalog(CatalogNormalizer):
    key = "design_patterns"
    prefix = "pattern"

    def normalize(self, raw: Dict[str, Any]) -> List[Document]:
        out: List[Document] = []
        for category in raw[self.key]:
            for pattern in category["patterns"]:
                snippet = (
                    f"Category: {join_values(category['category'])}. Purpose: {pattern['description']}. "
                    f"Use this pattern when you want to solve this problem: {pattern['problem_it_solves']}"
                )
                out.append(self._doc(pattern["name"], f"{pattern['name']} (Design Pattern)", snippet))
        return out


class AlgorithmCatalog(CatalogNormalizer):
    key = "data_structures_and_algorithms"
    prefix = "dsa"

    def normalize(self, raw: Dict[str, Any]) -> List[Document]:
        out: List[Document] = []
        for item in raw[self.key]:
            # every project application is kept, not just the first
            applications = "; ".join(
                f"a {app['project']}, where it is applied like this: {app['application']}"
                for app in item["project_applications"]
            )
            snippet = f"{item['description']} It is typically used for: {item['how_it_is_used']}."
            if applications:
                snippet += f" Sample projects: {applications}"
            out.append(self._doc(item["name"], f"Data Structure/Algorithm: {item['name']}", snippet))
        return out


class LanguageCatalog(CatalogNormalizer):
    key = "programming_languages"
    prefix = "lang"

    def normalize(self, raw: Dict[str, Any]) -> List[Document]:
        out: List[Document] = []
        for lang in raw[self.key]:
            snippet = (
                f"Known for: {join_values(lang['known_for'])}. Ideal for {join_values(lang['ideal_for'])}. "
                f"Strengths: {join_values(lang['strengths'])}. Paradigms: {join_values(lang['paradigms'])}. "
                f"Typing: {join_values(lang['typing'])}."
            )
            out.append(self._doc(lang["name"], f"Programming Language: {lang['name']}", snippet))
        return out


class ProjectIdeaCatalog(CatalogNormalizer):
    """Projects catalog: a top-level list of categories, each holding project_ideas."""
    key = "project_ideas"
    prefix = "project"

    def matches(self, raw: Any) -> bool:
        return (
            isinstance(raw, list)
            and bool(raw)
            and isinstance(raw[0], dict)
            and self.key in raw[0]
        )

    def normalize(self, raw: List[Dict[str, Any]]) -> List[Document]:
        out: List[Document] = []
        for category in raw:
            for project in category[self.key]:
                snippet = (
                    f"Category: {join_values(category['category'])}. Description: {project['description']} "
                    f"Suitable languages include: {join_values(project['languages'])}. "
                    f"Difficulty: {join_values(project['difficulty'])}."
                )
                out.append(self._doc(project["name"], f"Project Idea: {project['name']}", snippet))
        return out


CATALOG_NORMALIZERS: Tuple[CatalogNormalizer, ...] = (
    ApiStyleCatalog(),
    ArchitectureCatalog(),
    DesignPatternCatalog(),
    AlgorithmCatalog(),
    LanguageCatalog(),
    ProjectIdeaCatalog(),
)


def normalizer_for(raw: Any) -> CatalogNormalizer:
    """Return the normalizer registered for the catalog's top-level shape.

    Raises:
        CatalogFormatError: If no known shape matches.
    """
    for normalizer in CATALOG_NORMALIZERS:
        if normalizer.matches(raw):
            return normalizer
    if isinstance(raw, dict):
        shape = f"object with keys {sorted(raw)[:5]}"
    else:
        shape = type(raw).__name__
    raise CatalogFormatError(f"Unrecognized catalog shape: {shape}")


def normalize_catalog(raw: Any) -> List[Document]:
    """Normalize one parsed catalog into Documents, in entry order, with unique ids."""
    return dedupe_ids(normalizer_for(raw).normalize(raw))


def dedupe_ids(documents: Iterable[Document]) -> List[Document]:
    """Make document ids unique, keeping order.

    The first document with an id keeps it; later ones get the next free "_2", "_3", ...
    suffix. Renaming depends only on input order, so ids are reproducible across runs.
    """
    taken = set()
    out: List[Document] = []
    for doc in documents:
        doc_id = doc.id
        if doc_id in taken:
            n = 2
            while f"{doc.id}_{n}" in taken:
                n += 1
            doc_id = f"{doc.id}_{n}"
            logger.warning("Duplicate document id %s renamed to %s", doc.id, doc_id)
            doc = replace(doc, id=doc_id)
        taken.add(doc_id)
        out.append(doc)
    return out


def load_catalog_file(path: PathLike) -> List[Document]:
    """Read, parse and normalize a single catalog file.

    Raises:
        OSError: File missing or unreadable.
        ValueError: Invalid JSON or unrecognized shape (CatalogFormatError).
        KeyError/TypeError: Entry missing a required field or of the wrong type.
    """
    path = Path(path)
    with path.open("r", encoding="utf-8") as f:
        raw = json.load(f)
    return normalize_catalog(raw)


def load_documents(paths: Iterable[PathLike]) -> List[Document]:
    """Load and concatenate documents from source files in declaration order.

    Args:
        paths: Catalog file paths.

    Returns:
        List[Document]: Documents from every file that loaded successfully.
    """
    documents: List[Document] = []
    for path in paths:
        try:
            docs = load_catalog_file(path)
        except CatalogFormatError as e:
            logger.warning("Skipping %s: %s", path, e)
            continue
        except FileNotFoundError:
            logger.warning("Skipping %s: file not found", path)
            continue
        except Exception:
            logger.exception("Error reading or parsing %s", path)
            continue
        logger.info("Loaded %d documents from %s", len(docs), path)
        documents.extend(docs)

    documents = dedupe_ids(documents)
    logger.info("Loaded %d documents from all files.", len(documents))
    return documents


async def aload_documents(paths: Sequence[PathLike]) -> List[Document]:
    """Async wrapper running load_documents off the event loop."""
    return await asyncio.to_thread(load_documents, list(paths))


def source_paths(source_dir: PathLike, file_names: Iterable[str]) -> List[Path]:
    """Resolve configured source file names against the source directory."""
    base = Path(source_dir)
    return [base / name for name in file_names]
