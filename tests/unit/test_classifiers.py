# ============================================================================
# tests/unit/test_classifiers.py
# ============================================================================
"""
Tests for taxonomy classifier backends and factory
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from prescription_resolution.classifiers import (
    AbsentClassifier,
    ClassifierResponse,
    OllamaTaxonomyClassifier,
    clear_classifier_cache,
    create_classifier,
)
from prescription_resolution.classifiers.prompts import build_taxonomy_prompt
from prescription_resolution.utils.exceptions import ClassifierError, ConfigurationError


OLLAMA_ANSWER = """Kết quả:
{"category": "Thuốc cơ xương khớp", "subcategory": "NSAID", "dosageForm": "Gel",
 "route": "Dùng ngoài", "activeIngredient": "Diclofenac"}"""


@pytest.fixture(autouse=True)
def _fresh_factory():
    clear_classifier_cache()
    yield
    clear_classifier_cache()


class TestClassifierResponse:

    def test_from_camel_case_dict(self):
        response = ClassifierResponse.from_dict({
            "category": "Thuốc cơ xương khớp",
            "dosageForm": "Gel",
            "route": "  ",
            "activeIngredient": "diclofenac",
            "confidence": 0.9,
        })
        assert response.category == "Thuốc cơ xương khớp"
        assert response.dosage_form == "Gel"
        assert response.route is None
        assert response.active_ingredient == "diclofenac"
        assert not response.to_profile().is_complete

    def test_from_invalid_payload(self):
        assert ClassifierResponse.from_dict(None).is_empty
        assert ClassifierResponse.from_dict(["Gel"]).is_empty

    def test_nested_values_ignored(self):
        response = ClassifierResponse.from_dict({"category": {"name": "x"}, "route": "Uống"})
        assert response.category is None
        assert response.route == "Uống"


class TestExtractJson:

    def test_json_wrapped_in_prose(self):
        parsed = AbsentClassifier().extract_json('Answer: {"category": "A"} done')
        assert parsed == {"category": "A"}

    def test_malformed_json_repaired(self):
        parsed = AbsentClassifier().extract_json("{'category': 'A', 'route': 'Uống',}")
        assert parsed == {"category": "A", "route": "Uống"}

    def test_no_json(self):
        classifier = AbsentClassifier()
        assert classifier.extract_json("") is None
        assert classifier.extract_json("no json here") is None


def test_absent_classifier():
    classifier = AbsentClassifier()

    response = asyncio.run(classifier.classify("Arcoxia", "90mg"))
    assert response.is_empty
    assert classifier.backend_name == "none"
    assert not classifier.is_available

    health = asyncio.run(classifier.health_check())
    assert health["healthy"] is True
    assert classifier.get_statistics()["call_count"] == 1


class TestFactory:

    def test_none_backend(self):
        assert isinstance(create_classifier({"classifier_backend": "none"}), AbsentClassifier)

    def test_unknown_backend(self):
        with pytest.raises(ConfigurationError):
            create_classifier({"classifier_backend": "bogus"})

    def test_ollama_instances_are_cached(self):
        config = {"classifier_backend": "ollama", "ollama_host": "http://ollama.test:11434"}
        first = create_classifier(config)
        second = create_classifier(config)

        assert isinstance(first, OllamaTaxonomyClassifier)
        assert first is second
        assert first.host == "http://ollama.test:11434"
        assert first.model_name == "qwen2.5:7b-instruct"


class TestOllamaClassifier:
    """Ollama backend with the HTTP call mocked out"""

    def test_classify_parses_answer(self):
        classifier = OllamaTaxonomyClassifier({"use_cache": True})
        classifier.generate = AsyncMock(return_value=OLLAMA_ANSWER)

        response = asyncio.run(classifier.classify("Voltaren Emulgel", "1%/20g"))

        assert response.to_profile().is_complete
        assert response.dosage_form == "Gel"
        assert response.active_ingredient == "Diclofenac"
        prompt = classifier.generate.call_args[0][0]
        assert "Voltaren Emulgel" in prompt
        assert "1%/20g" in prompt

    def test_answers_are_cached(self):
        classifier = OllamaTaxonomyClassifier({"use_cache": True})
        classifier.generate = AsyncMock(return_value=OLLAMA_ANSWER)

        async def classify_twice():
            await classifier.classify("Voltaren Emulgel", "1%/20g")
            return await classifier.classify("voltaren emulgel ", "1%/20G")

        response = asyncio.run(classify_twice())

        assert response.subcategory == "NSAID"
        assert classifier.generate.await_count == 1
        stats = classifier.get_statistics()
        assert stats["cache_hits"] == 1
        assert stats["cached_answers"] == 1

    def test_cache_is_bounded(self):
        """Least recently used answers are dropped once the cap is reached"""
        classifier = OllamaTaxonomyClassifier({"use_cache": True, "cache_max_size": 2})
        classifier.generate = AsyncMock(return_value=OLLAMA_ANSWER)

        async def classify_all():
            await classifier.classify("Voltaren Emulgel", "1%/20g")
            await classifier.classify("Arcoxia", "90mg")
            await classifier.classify("Voltaren Emulgel", "1%/20g")
            await classifier.classify("Mobic", "7.5mg")
            await classifier.classify("Voltaren Emulgel", "1%/20g")
            await classifier.classify("Arcoxia", "90mg")

        asyncio.run(classify_all())

        # Arcoxia was least recently used when Mobic arrived, so it is asked again
        assert classifier.generate.await_count == 4
        stats = classifier.get_statistics()
        assert stats["cache_hits"] == 2
        assert stats["cached_answers"] == 2

    def test_backend_errors_propagate(self):
        classifier = OllamaTaxonomyClassifier({"use_cache": False})
        classifier.generate = AsyncMock(side_effect=ClassifierError("connection refused"))

        with pytest.raises(ClassifierError):
            asyncio.run(classifier.classify("Arcoxia", "90mg"))
        assert classifier.get_statistics()["failure_count"] == 1


def test_prompt_defaults_unknown_dosage():
    prompt = build_taxonomy_prompt("Arcoxia")
    assert "Arcoxia" in prompt
    assert "không rõ" in prompt
