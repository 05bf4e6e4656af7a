"""The three fixed model tasks: analyse, answer, convert."""

from __future__ import annotations

import json
from dataclasses import asdict
from typing import Any, Dict, List, Optional, Sequence

from ..errors import AIError, GitMindError
from ..logging import get_logger
from ..models import (
    AnalysisResult,
    ApiEndpoint,
    ConversionResult,
    FileAnswer,
    FileEntry,
    GeneratedFile,
    Repository,
)
from ..prompting.constants import (
    ANALYSIS_SCHEMA,
    ANALYZE_SYSTEM,
    ANSWER_SCHEMA,
    ASK_SYSTEM,
    CONVERSION_FILE_LIMIT,
    CONVERSION_SCHEMA,
    CONVERSION_SUFFIXES,
    CONVERT_BRIEF,
    CONVERT_SYSTEM,
    FILE_CHAR_LIMIT,
    README_CHAR_LIMIT,
)
from .runner import LLMRunner, parse_json_reply


class AIClient:
    """Submits each task with a strict schema and parses the JSON reply.

    No retries and no partial results: any failure surfaces as
    :class:`AIError` carrying the raw error text.
    """

    def __init__(self, runner: LLMRunner | None = None) -> None:
        self._runner = runner
        self.logger = get_logger("ai")

    @property
    def runner(self) -> LLMRunner:
        if self._runner is None:
            self._runner = LLMRunner()
        return self._runner

    def analyze_project(self, repo: Repository, readme: str) -> AnalysisResult:
        prompt = "\n".join(
            [
                "Analyse the following GitHub project:",
                f"Name: {repo.full_name}",
                f"Description: {repo.description or ''}",
                f"Primary language: {repo.language or 'unknown'}",
                "",
                "README content:",
                readme[:README_CHAR_LIMIT],
            ]
        )
        payload = self._call(prompt, ANALYZE_SYSTEM, ANALYSIS_SCHEMA, "analysis")
        return AnalysisResult(
            summary=_require_str(payload, "summary"),
            technologies=_str_list(payload.get("technologies")),
            architecture=_require_str(payload, "architecture"),
            suggestions=_str_list(payload.get("suggestions")),
        )

    def ask_about_file(self, file_name: str, content: str, question: str) -> FileAnswer:
        prompt = (
            f"File: {file_name}\n\nContent:\n{content[:FILE_CHAR_LIMIT]}\n\n"
            f"Question: {question}"
        )
        payload = self._call(prompt, ASK_SYSTEM, ANSWER_SCHEMA, "file_answer")
        proposed = payload.get("proposed_content")
        return FileAnswer(
            answer=_require_str(payload, "answer"),
            proposed_content=proposed if isinstance(proposed, str) and proposed else None,
        )

    def convert_to_react_php(
        self,
        repo_name: str,
        files: Sequence[FileEntry],
        analysis: Optional[AnalysisResult],
    ) -> ConversionResult:
        relevant = [entry for entry in files if entry.name.endswith(CONVERSION_SUFFIXES)]
        relevant = relevant[:CONVERSION_FILE_LIMIT]
        listing = "\n".join(f"- {entry.path}" for entry in relevant) or "- (none)"
        prompt = CONVERT_BRIEF.format(
            repo_name=repo_name,
            analysis=json.dumps(asdict(analysis)) if analysis is not None else "{}",
            files=listing,
        )
        payload = self._call(prompt, CONVERT_SYSTEM, CONVERSION_SCHEMA, "conversion")
        endpoints: List[ApiEndpoint] = []
        for raw in payload.get("apiEndpoints") or []:
            if not isinstance(raw, dict):
                continue
            endpoints.append(
                ApiEndpoint(
                    method=str(raw.get("method") or ""),
                    route=str(raw.get("route") or ""),
                    php_controller=str(raw.get("phpController") or ""),
                )
            )
        generated: List[GeneratedFile] = []
        for raw in payload.get("generatedFiles") or []:
            if isinstance(raw, dict) and isinstance(raw.get("path"), str):
                generated.append(
                    GeneratedFile(path=raw["path"], content=str(raw.get("content") or ""))
                )
        return ConversionResult(
            php_structure=_require_str(payload, "phpStructure"),
            api_endpoints=endpoints,
            react_updates=str(payload.get("reactUpdates") or ""),
            setup_guide=str(payload.get("setupGuide") or ""),
            generated_files=generated,
        )

    def _call(
        self, prompt: str, system: str, schema: Dict[str, Any], name: str
    ) -> Dict[str, Any]:
        self.logger.info("Requesting %s from model %s", name, self.runner.model)
        try:
            reply = self.runner.run(prompt, system=system, schema=schema, schema_name=name)
        except GitMindError as exc:
            if isinstance(exc, AIError):
                raise
            raise AIError(str(exc)) from exc
        payload = parse_json_reply(reply)
        if not isinstance(payload, dict):
            raise AIError(f"Model returned {type(payload).__name__} instead of a JSON object")
        return payload


def _require_str(payload: Dict[str, Any], key: str) -> str:
    value = payload.get(key)
    if not isinstance(value, str):
        raise AIError(f"Model response is missing required field '{key}'")
    return value


def _str_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if isinstance(item, (str, int, float))]


__all__ = ["AIClient"]
