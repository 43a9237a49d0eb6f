"""Tests for the total extract() entry point in specmatch.analysis.extractor."""

from __future__ import annotations

import time

import pytest

from specmatch.analysis import PythonAstExtractor, extract, extract_with_status
from specmatch.analysis.base import FeatureExtractor
from specmatch.analysis.extractor import attach_file
from specmatch.exceptions import AnalysisDegraded
from specmatch.models import CodeFeatureSet, EndpointFeature, ExtractorConfig


class _ExplodingExtractor(FeatureExtractor):
    @property
    def name(self) -> str:
        return "exploding"

    def extract_endpoints(self, text: str) -> list[EndpointFeature]:
        raise RuntimeError("boom")

    def extract_methods(self, text: str):
        return []

    def extract_schemas(self, text: str):
        return []


class TestExtract:
    def test_client_call(self) -> None:
        features = extract("axios.get('/api/users')")
        assert {e.path for e in features.endpoints} == {"/api/users"}
        assert [m.method for m in features.methods] == ["GET"]

    def test_empty_text_yields_empty_set(self) -> None:
        assert extract("").is_empty

    def test_non_text_input(self) -> None:
        assert extract(None).is_empty
        assert extract(12345).is_empty
        assert extract(b"axios.get('/api/users')").is_empty

    def test_oversize_input(self) -> None:
        config = ExtractorConfig(max_input_chars=10)
        assert extract("axios.get('/api/users')", config=config).is_empty

    def test_failing_extractor_degrades(self) -> None:
        assert extract("anything", extractor=_ExplodingExtractor()).is_empty

    def test_ast_syntax_error_degrades(self) -> None:
        assert extract("interface Pet {}", extractor=PythonAstExtractor()).is_empty

    def test_file_stamped_on_every_feature(self) -> None:
        text = "interface Pet {}\nfunction f(id: string) { return axios.get('/api/pets'); }"
        features = extract(text, file="src/api.ts")
        everything = [
            *features.endpoints,
            *features.methods,
            *features.schema_names,
            *features.parameters,
        ]
        assert everything
        assert {f.file for f in everything} == {"src/api.ts"}


class TestUnterminatedConstructs:
    @pytest.mark.parametrize(
        "chunk",
        [
            "methods=[",
            "function <",
            "type T<",
            "api.get('/api/",
            "path: \"/",
            "(a): T ",
            "@RequestParam(",
        ],
    )
    def test_repeated_openers_finish_quickly(self, chunk: str) -> None:
        started = time.perf_counter()
        extract(chunk * 20000)
        assert time.perf_counter() - started < 5

    def test_long_paths_still_match(self) -> None:
        path = "/api/" + "/".join(f"segment{i}" for i in range(40))
        features = extract(f"fetch('{path}')")
        assert path in {e.path for e in features.endpoints}

    def test_multiline_method_list(self) -> None:
        text = "@app.route('/api/pets', methods=[\n    'GET',\n    'POST',\n])"
        assert {m.method for m in extract(text).methods} >= {"GET", "POST"}


class TestExtractWithStatus:
    def test_success_has_no_notice(self) -> None:
        features, notice = extract_with_status("axios.get('/api/users')")
        assert notice is None
        assert not features.is_empty

    def test_blank_text_is_not_degraded(self) -> None:
        features, notice = extract_with_status("   \n\t")
        assert features.is_empty
        assert notice is None

    def test_non_text_notice(self) -> None:
        _, notice = extract_with_status(None, side="source")
        assert isinstance(notice, AnalysisDegraded)
        assert notice.side == "source"
        assert "expected text, got NoneType" in str(notice)

    def test_oversize_notice(self) -> None:
        _, notice = extract_with_status(
            "x" * 20, config=ExtractorConfig(max_input_chars=10), file="big.ts"
        )
        assert "big.ts" in str(notice)
        assert "exceeds the limit of 10" in str(notice)

    def test_extractor_failure_notice(self) -> None:
        _, notice = extract_with_status(
            "anything", extractor=_ExplodingExtractor(), side="target"
        )
        assert notice.side == "target"
        assert "exploding extractor failed on target: boom" in str(notice)

    def test_nothing_found_notice(self) -> None:
        _, notice = extract_with_status("just some prose", side="source")
        assert "No interface features found in source" in str(notice)


class TestAttachFile:
    def test_returns_copies(self) -> None:
        endpoint = EndpointFeature(path="/a", line=1, raw_match="'/a'")
        original = CodeFeatureSet(endpoints=[endpoint])
        stamped = attach_file(original, "a.py")
        assert stamped.endpoints[0].file == "a.py"
        assert original.endpoints[0].file is None
