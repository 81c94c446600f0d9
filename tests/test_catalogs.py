import json

import pytest

from codeguide.ingestion.catalogs import (
    CATALOG_NORMALIZERS,
    CatalogFormatError,
    load_documents,
    normalize_catalog,
    normalizer_for,
    source_paths,
)
from conftest import SAMPLE_CATALOGS, SAMPLE_IDS, write_json


def test_language_entry_becomes_one_document(tmp_path):
    path = write_json(tmp_path / "languages.json", SAMPLE_CATALOGS["languages.json"])

    docs = load_documents([path])

    assert [d.id for d in docs] == ["lang_Go"]
    assert docs[0].title == "Programming Language: Go"
    for word in ["concurrency", "services", "speed", "simplicity", "imperative", "static"]:
        assert word in docs[0].snippet


def test_all_catalogs_load_in_declaration_then_entry_order(catalog_paths):
    docs = load_documents(catalog_paths)
    assert [d.id for d in docs] == SAMPLE_IDS


def test_loading_twice_gives_identical_ids(catalog_paths):
    first = [d.id for d in load_documents(catalog_paths)]
    second = [d.id for d in load_documents(catalog_paths)]
    assert first == second


@pytest.mark.parametrize(
    "file_name, expected_title, fragments",
    [
        ("api_patterns.json", "REST API Style", ["Resource oriented", "CRUD services", "public APIs", "cacheability"]),
        ("architectures.json", "Event Driven Architecture", ["through events", "streaming pipelines", "loose coupling"]),
        ("design_patterns.json", "Factory Method (Design Pattern)", ["Creational", "Defer instantiation", "naming concrete"]),
        ("dsa.json", "Data Structure/Algorithm: Hash Map", ["O(1)", "caching and indexing", "URL shortener", "word counter"]),
        ("projects.json", "Project Idea: Todo App", ["Web", "task tracker", "JavaScript, Python", "Beginner"]),
    ],
)
def test_each_catalog_keeps_every_field(file_name, expected_title, fragments):
    docs = normalize_catalog(SAMPLE_CATALOGS[file_name])
    assert docs[0].title == expected_title
    for fragment in fragments:
        assert fragment in docs[0].snippet


def test_nested_pattern_categories_are_flattened():
    docs = normalize_catalog(SAMPLE_CATALOGS["design_patterns.json"])
    assert [d.id for d in docs] == ["pattern_Factory_Method", "pattern_Builder", "pattern_Observer"]
    assert docs[2].snippet.startswith("Category: Behavioral.")


def test_whitespace_runs_become_single_underscores():
    raw = {"programming_languages": [dict(SAMPLE_CATALOGS["languages.json"]["programming_languages"][0], name="Objective  C\tPlus")]}
    assert normalize_catalog(raw)[0].id == "lang_Objective_C_Plus"


def test_document_text_joins_title_and_snippet():
    doc = normalize_catalog(SAMPLE_CATALOGS["languages.json"])[0]
    assert doc.text == f"{doc.title}. {doc.snippet}"


def test_registry_has_one_normalizer_per_shape():
    assert len(CATALOG_NORMALIZERS) == 6
    for name, raw in SAMPLE_CATALOGS.items():
        assert normalizer_for(raw).normalize(raw), name


@pytest.mark.parametrize("raw", [{"unknown": []}, [], [{"category": "x"}], "text", 42])
def test_unknown_shapes_raise(raw):
    with pytest.raises(CatalogFormatError):
        normalizer_for(raw)


def test_unknown_shape_file_is_skipped(tmp_path, caplog):
    bad = write_json(tmp_path / "mystery.json", {"frameworks": [{"name": "X"}]})
    good = write_json(tmp_path / "languages.json", SAMPLE_CATALOGS["languages.json"])

    docs = load_documents([bad, good])

    assert [d.id for d in docs] == ["lang_Go"]
    assert "Unrecognized catalog shape" in caplog.text


def test_malformed_json_file_is_skipped(tmp_path):
    bad = tmp_path / "api_patterns.json"
    bad.write_text('{"api_styles": [', encoding="utf-8")
    good = write_json(tmp_path / "languages.json", SAMPLE_CATALOGS["languages.json"])

    assert [d.id for d in load_documents([bad, good])] == ["lang_Go"]


def test_missing_file_is_skipped(tmp_path):
    good = write_json(tmp_path / "languages.json", SAMPLE_CATALOGS["languages.json"])
    assert [d.id for d in load_documents([tmp_path / "nope.json", good])] == ["lang_Go"]


def test_entry_missing_field_drops_only_that_file(tmp_path):
    broken = {"architectures": [{"architecture_name": "Layered", "description": "Tiers."}]}
    bad = write_json(tmp_path / "architectures.json", broken)
    good = write_json(tmp_path / "languages.json", SAMPLE_CATALOGS["languages.json"])

    assert [d.id for d in load_documents([bad, good])] == ["lang_Go"]


def test_all_files_failing_yields_empty_corpus(tmp_path):
    bad = tmp_path / "dsa.json"
    bad.write_text(json.dumps({"nothing": True}), encoding="utf-8")
    assert load_documents([bad, tmp_path / "missing.json"]) == []


def test_source_paths_keep_configured_order(tmp_path):
    paths = source_paths(tmp_path, ["b.json", "a.json"])
    assert [p.name for p in paths] == ["b.json", "a.json"]


def test_pattern_listed_in_two_categories_gets_suffixed_id(caplog):
    observer = SAMPLE_CATALOGS["design_patterns.json"]["design_patterns"][1]["patterns"][0]
    raw = {
        "design_patterns": [
            {"category": "Creational", "patterns": [observer]},
            {"category": "Behavioral", "patterns": [observer]},
        ]
    }

    docs = normalize_catalog(raw)

    assert [d.id for d in docs] == ["pattern_Observer", "pattern_Observer_2"]
    assert docs[0].snippet.startswith("Category: Creational.")
    assert docs[1].snippet.startswith("Category: Behavioral.")
    assert "pattern_Observer renamed to pattern_Observer_2" in caplog.text


def test_same_language_in_two_files_keeps_ids_unique_and_stable(tmp_path):
    first = write_json(tmp_path / "languages.json", SAMPLE_CATALOGS["languages.json"])
    second = write_json(tmp_path / "more_languages.json", SAMPLE_CATALOGS["languages.json"])

    ids = [d.id for d in load_documents([first, second, first])]

    assert ids == ["lang_Go", "lang_Go_2", "lang_Go_3"]
    assert [d.id for d in load_documents([first, second, first])] == ids


def test_list_valued_scalar_fields_are_joined():
    lang = dict(SAMPLE_CATALOGS["languages.json"]["programming_languages"][0], typing=["static", "strong"])
    project_catalog = [
        dict(
            SAMPLE_CATALOGS["projects.json"][0],
            category=["Web", "Tools"],
            project_ideas=[dict(SAMPLE_CATALOGS["projects.json"][0]["project_ideas"][0], difficulty=["Beginner", "Intermediate"])],
        )
    ]

    lang_doc = normalize_catalog({"programming_languages": [lang]})[0]
    project_doc = normalize_catalog(project_catalog)[0]

    assert "Typing: static, strong." in lang_doc.snippet
    assert "Category: Web, Tools." in project_doc.snippet
    assert "Difficulty: Beginner, Intermediate." in project_doc.snippet
    assert "[" not in lang_doc.snippet + project_doc.snippet
