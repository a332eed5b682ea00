# =============================================================================
# core/services/llm_service.py - LLM Markdown Generation
# =============================================================================
# Generates architecture documents and implementation tasks with one of
# three providers, selected by LLM_PROVIDER:
# - openai: OpenAI SDK
# - groq:   OpenAI SDK pointed at Groq's OpenAI-compatible endpoint
# - ollama: Local Ollama server, POST {base}/api/chat via httpx
#
# Failures surface as ExternalServiceError("LLM", ...) so routes return 502
# with a readable message.
#
# Usage:
#   llm = LLMService()
#   markdown = llm.generate_architecture_markdown("octocat/hello-world", structure)
# =============================================================================

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx
from openai import OpenAI

from app.config import settings
from app.exceptions import ConfigurationError, ExternalServiceError
from core.models.task import GeneratedTask, extract_task_title
from core.prompts import (
    ARCHITECTURE_SYSTEM_PROMPT,
    TASK_SYSTEM_PROMPT,
    build_architecture_prompt,
    build_task_prompt,
)

logger = logging.getLogger(__name__)

GROQ_BASE_URL = "https://api.groq.com/openai/v1"


@dataclass(frozen=True)
class CompletionParams:
    """Sampling parameters per provider."""
    temperature: float
    max_tokens: int


OPENAI_PARAMS = CompletionParams(temperature=0.7, max_tokens=4000)
GROQ_PARAMS = CompletionParams(temperature=0.5, max_tokens=8000)


class LLMService:
    """
    Provider-agnostic markdown generator.

    Example:
        llm = LLMService()
        task = llm.generate_task(architecture_md, "Add password reset", "octocat/app")
        print(task.title)

    Attributes:
        provider: "openai", "groq" or "ollama"
        model: Model name for the selected provider
    """

    def __init__(
        self,
        provider: str | None = None,
        client: OpenAI | None = None,
        http_client: httpx.Client | None = None,
    ):
        """
        Initialize the service.

        Args:
            provider: Override settings.LLM_PROVIDER
            client: Pre-built OpenAI-compatible client (openai/groq)
            http_client: httpx client for Ollama requests

        Raises:
            ConfigurationError: If the provider's API key is missing
        """
        self.provider = (provider or settings.LLM_PROVIDER).lower()
        self.http_client = http_client
        self.client: OpenAI | None = None

        if self.provider == "groq":
            if client is None and not settings.GROQ_API_KEY:
                raise ConfigurationError("GROQ_API_KEY environment variable is not set", "GROQ_API_KEY")
            self.client = client or OpenAI(api_key=settings.GROQ_API_KEY, base_url=GROQ_BASE_URL)
            self.model = settings.GROQ_MODEL
            self.params = GROQ_PARAMS
        elif self.provider == "ollama":
            self.model = settings.OLLAMA_MODEL
            self.params = None
        else:
            self.provider = "openai"
            if client is None and not settings.OPENAI_API_KEY:
                raise ConfigurationError("OPENAI_API_KEY environment variable is not set", "OPENAI_API_KEY")
            self.client = client or OpenAI(api_key=settings.OPENAI_API_KEY)
            self.model = settings.OPENAI_MODEL
            self.params = OPENAI_PARAMS

        logger.info(f"LLMService initialized with provider={self.provider}, model={self.model}")

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def generate_architecture_markdown(
        self,
        repo_name: str,
        repo_structure: dict[str, Any],
    ) -> str:
        """
        Generate architecture.md for a repository tree.

        Args:
            repo_name: Repository full name (owner/repo)
            repo_structure: Normalized RepoFile tree as a dict

        Returns:
            Markdown document

        Raises:
            ExternalServiceError: If the provider fails or returns nothing
        """
        logger.info(f"Generating architecture markdown for {repo_name}")
        prompt = build_architecture_prompt(repo_name, repo_structure)
        return self._generate(ARCHITECTURE_SYSTEM_PROMPT, prompt, "architecture markdown")

    def generate_task(
        self,
        architecture_markdown: str,
        feature_description: str,
        repo_name: str,
    ) -> GeneratedTask:
        """
        Generate an implementation plan for a feature.

        Args:
            architecture_markdown: The snapshot's architecture document
            feature_description: What the user wants to build
            repo_name: Repository full name (owner/repo)

        Returns:
            GeneratedTask with markdown and extracted title

        Raises:
            ExternalServiceError: If the provider fails or returns nothing
        """
        logger.info(f"Generating task for {repo_name}: '{feature_description[:50]}'")
        prompt = build_task_prompt(architecture_markdown, feature_description, repo_name)
        markdown = self._generate(TASK_SYSTEM_PROMPT, prompt, "task")
        return GeneratedTask(
            title=extract_task_title(markdown, feature_description),
            markdown=markdown,
        )

    # -------------------------------------------------------------------------
    # Providers
    # -------------------------------------------------------------------------

    def _generate(self, system_prompt: str, prompt: str, what: str) -> str:
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": prompt},
        ]

        try:
            if self.provider == "ollama":
                content = self._generate_with_ollama(messages)
            else:
                content = self._generate_with_openai_sdk(messages)
        except ExternalServiceError:
            raise
        except Exception as e:
            logger.error(f"LLM call failed ({self.provider}): {e}")
            raise ExternalServiceError("LLM", f"Failed to generate {what}: {self._format_error(e)}")

        if not content:
            raise ExternalServiceError("LLM", f"No content generated from {self._provider_name}")

        return content

    def _generate_with_openai_sdk(self, messages: list[dict[str, str]]) -> str | None:
        """OpenAI and Groq share the chat completions API."""
        response = self.client.chat.completions.create(
            model=self.model,
            messages=messages,
            temperature=self.params.temperature,
            max_tokens=self.params.max_tokens,
        )
        if not response.choices:
            return None
        return response.choices[0].message.content

    def _generate_with_ollama(self, messages: list[dict[str, str]]) -> str | None:
        url = f"{settings.ollama_base_url}/api/chat"
        body = {"model": self.model, "stream": False, "messages": messages}

        if self.http_client is not None:
            response = self.http_client.post(url, json=body)
        else:
            # Local generation routinely takes minutes
            with httpx.Client(timeout=None) as http:
                response = http.post(url, json=body)

        if response.is_error:
            detail = f": {response.text}" if response.text else ""
            raise ExternalServiceError(
                "LLM",
                f"Ollama request failed with status {response.status_code}{detail}",
            )

        return (response.json().get("message") or {}).get("content")

    # -------------------------------------------------------------------------
    # Error Formatting
    # -------------------------------------------------------------------------

    @property
    def _provider_name(self) -> str:
        return {"openai": "OpenAI", "groq": "Groq", "ollama": "Ollama"}[self.provider]

    def _format_error(self, error: Exception) -> str:
        """Readable message for a provider failure; 429s become a wait hint."""
        status = getattr(error, "status_code", None)
        if status == 429:
            return f"{self._provider_name} API rate limit exceeded. Please wait and try again."
        return str(error) or f"Unknown {self._provider_name} error occurred"
