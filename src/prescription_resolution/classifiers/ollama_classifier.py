# ============================================================================
# src/prescription_resolution/classifiers/ollama_classifier.py
# ============================================================================
"""
Ollama Taxonomy Classifier

Asks a local model served by Ollama to guess a medicine's category,
subcategory, dosage form and route.

Setup:
    1. Install Ollama: https://ollama.ai
    2. Pull model: ollama pull qwen2.5:7b-instruct
    3. Start server: ollama serve (or it runs automatically)
    4. CLASSIFIER_BACKEND=ollama in .env
"""

import aiohttp
import asyncio
from collections import OrderedDict
from typing import Dict, Any, Optional, Tuple
from datetime import datetime

from .base import TaxonomyClassifier, ClassifierResponse
from .prompts import build_taxonomy_prompt
from ..utils.exceptions import ClassifierError, ClassifierTimeoutError


DEFAULT_OLLAMA_MODEL = "qwen2.5:7b-instruct"


class OllamaTaxonomyClassifier(TaxonomyClassifier):
    """
    Ollama-based taxonomy classifier.

    Config options:
        ollama_host: Ollama server URL (default: http://localhost:11434)
        ollama_model: Model name (default: qwen2.5:7b-instruct)
        max_tokens: Max tokens to generate (default: 300)
        temperature: Sampling temperature (default: 0.0)
        classifier_timeout: Per-request timeout in seconds (default: 15)
        use_cache: Remember answers per (name, dosage) (default: True)
        cache_max_size: Answers kept before the least recently used is dropped (default: 500)
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        super().__init__(config)

        self.host = self.config.get('ollama_host', 'http://localhost:11434').rstrip('/')
        self._model_name = self.config.get('ollama_model', DEFAULT_OLLAMA_MODEL)

        self.max_tokens = self.config.get('max_tokens', 300)
        self.temperature = self.config.get('temperature', 0.0)
        self.timeout = self.config.get('classifier_timeout', 15.0)

        # Response cache, keyed by (name, dosage); LRU once cache_max_size is reached
        self.cache_max_size = max(1, int(self.config.get('cache_max_size', 500)))
        self._cache: Optional[OrderedDict[Tuple[str, str], ClassifierResponse]] = (
            OrderedDict() if self.config.get('use_cache', True) else None
        )

        # HTTP session (created lazily, tied to event loop)
        self._session: Optional[aiohttp.ClientSession] = None
        self._session_loop: Optional[asyncio.AbstractEventLoop] = None

        self.logger.info(f"Initialized Ollama classifier: {self.host} / {self._model_name}")

    @property
    def backend_name(self) -> str:
        return "ollama"

    @property
    def model_name(self) -> str:
        return self._model_name

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session for current event loop."""
        current_loop = asyncio.get_running_loop()

        needs_new_session = (
            self._session is None
            or self._session.closed
            or self._session_loop is not current_loop
        )

        if needs_new_session:
            if self._session is not None and not self._session.closed:
                try:
                    await self._session.close()
                except Exception as e:
                    self.logger.debug(f"Ignoring error closing stale session: {e}")

            timeout = aiohttp.ClientTimeout(total=None, sock_connect=10)
            self._session = aiohttp.ClientSession(timeout=timeout)
            self._session_loop = current_loop

        return self._session

    async def close(self):
        """Close HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None
        self._session_loop = None

    async def health_check(self) -> Dict[str, Any]:
        """
        Check if Ollama server is running and model is available.
        """
        try:
            session = await self._get_session()

            async with session.get(f"{self.host}/api/tags") as response:
                if response.status != 200:
                    return {
                        "healthy": False,
                        "backend": "ollama",
                        "model": self._model_name,
                        "details": f"Ollama server returned status {response.status}"
                    }

                data = await response.json()
                models = [m.get('name', '') for m in data.get('models', [])]

                if not any(self._model_name in m for m in models):
                    return {
                        "healthy": False,
                        "backend": "ollama",
                        "model": self._model_name,
                        "details": f"Model not found. Available: {models}. Run: ollama pull {self._model_name}"
                    }

                return {
                    "healthy": True,
                    "backend": "ollama",
                    "model": self._model_name,
                    "details": "Ollama server running and model available"
                }

        except aiohttp.ClientConnectorError:
            return {
                "healthy": False,
                "backend": "ollama",
                "model": self._model_name,
                "details": f"Cannot connect to Ollama at {self.host}. Is it running? Try: ollama serve"
            }
        except Exception as e:
            return {
                "healthy": False,
                "backend": "ollama",
                "model": self._model_name,
                "details": f"Health check failed: {str(e)}"
            }

    async def generate(self, prompt: str) -> str:
        """
        Run one JSON-mode generation and return the raw response text.

        Raises:
            ClassifierTimeoutError: No answer within classifier_timeout
            ClassifierError: Connection or HTTP failure
        """
        payload = {
            "model": self._model_name,
            "prompt": prompt,
            "stream": False,
            "format": "json",
            "options": {
                "num_predict": self.max_tokens,
                "temperature": self.temperature,
            }
        }

        session = await self._get_session()

        async def _do_request():
            async with session.post(f"{self.host}/api/generate", json=payload) as response:
                if response.status != 200:
                    error_text = await response.text()
                    raise ClassifierError(f"Ollama error ({response.status}): {error_text}")
                return await response.json()

        try:
            data = await asyncio.wait_for(_do_request(), timeout=self.timeout)
        except asyncio.TimeoutError:
            raise ClassifierTimeoutError(
                f"Ollama request timed out after {self.timeout}s (model={self._model_name})"
            )
        except aiohttp.ClientConnectorError:
            raise ClassifierError(
                f"Cannot connect to Ollama at {self.host}. Make sure Ollama is running: ollama serve"
            )
        except aiohttp.ClientError as e:
            raise ClassifierError(f"Ollama request failed: {e}") from e

        return data.get('response', '')

    async def classify(self, name: str, dosage: Optional[str] = None) -> ClassifierResponse:
        key = (name.strip().lower(), (dosage or "").strip().lower())
        if self._cache is not None and key in self._cache:
            self._cache_hits += 1
            self.logger.debug(f"Cache hit for {name!r}")
            self._cache.move_to_end(key)
            return self._cache[key]

        start_time = datetime.now()
        self._call_count += 1
        try:
            text = await self.generate(build_taxonomy_prompt(name, dosage))
        except ClassifierError:
            self._failure_count += 1
            raise

        response = ClassifierResponse.from_dict(self.extract_json(text))
        duration = (datetime.now() - start_time).total_seconds()
        self.logger.info(
            f"Classified {name!r} in {duration:.2f}s "
            f"({len(response.to_profile().known_fields())}/4 attributes)"
        )

        if self._cache is not None:
            self._cache[key] = response
            self._cache.move_to_end(key)
            while len(self._cache) > self.cache_max_size:
                evicted, _ = self._cache.popitem(last=False)
                self.logger.debug(f"Evicted cached answer for {evicted[0]!r}")
        return response

    def get_statistics(self) -> Dict[str, Any]:
        stats = super().get_statistics()
        stats["ollama_host"] = self.host
        stats["model"] = self._model_name
        stats["cached_answers"] = len(self._cache) if self._cache is not None else 0
        return stats
