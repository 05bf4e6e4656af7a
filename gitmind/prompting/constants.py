"""System prompts and response schemas for the model tasks."""

from __future__ import annotations

from typing import Any, Dict

README_CHAR_LIMIT = 5000
FILE_CHAR_LIMIT = 8000
CONVERSION_FILE_LIMIT = 8
CONVERSION_SUFFIXES: tuple[str, ...] = (".ts", ".tsx", ".json")

ANALYZE_SYSTEM = (
    "You are a senior software architect. Analyse the project and return a "
    "structured JSON object."
)

ASK_SYSTEM = (
    "You are an expert developer explaining code. Answer didactically. When the "
    "question asks for a change to the file, put the complete updated file in "
    "proposed_content; otherwise set proposed_content to null."
)

CONVERT_SYSTEM = "Return a response strictly in the JSON format defined by the schema."

CONVERT_BRIEF = """\
You are a full-stack engineer specialising in system migrations.
GOAL: turn a pure React/TypeScript front end into a hybrid "React + modern PHP" application.

ORIGINAL PROJECT: {repo_name}
PRIOR ANALYSIS: {analysis}

TASKS:
1. Design a PHP 8.3 back end (Controllers, Repositories, PSR-12).
2. Propose a folder layout where React lives in /frontend and PHP in /api.
3. Identify database needs and write the PHP migrations.
4. Show how React should call the new PHP back end.

RELEVANT FILES:
{files}

Return ONLY valid JSON."""

ANALYSIS_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "summary": {"type": "string", "description": "Concise project summary"},
        "technologies": {
            "type": "array",
            "items": {"type": "string"},
            "description": "Detected technologies",
        },
        "architecture": {"type": "string", "description": "Likely architecture"},
        "suggestions": {
            "type": "array",
            "items": {"type": "string"},
            "description": "Improvement suggestions",
        },
    },
    "required": ["summary", "technologies", "architecture", "suggestions"],
    "additionalProperties": False,
}

ANSWER_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "answer": {"type": "string"},
        "proposed_content": {
            "type": ["string", "null"],
            "description": "Full replacement content for the file, or null",
        },
    },
    "required": ["answer", "proposed_content"],
    "additionalProperties": False,
}

CONVERSION_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "phpStructure": {
            "type": "string",
            "description": "New PHP folder and file structure",
        },
        "apiEndpoints": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "method": {"type": "string"},
                    "route": {"type": "string"},
                    "phpController": {
                        "type": "string",
                        "description": "Example PHP controller code",
                    },
                },
                "required": ["method", "route", "phpController"],
                "additionalProperties": False,
            },
        },
        "reactUpdates": {
            "type": "string",
            "description": "What to change in React to talk to the PHP API",
        },
        "setupGuide": {
            "type": "string",
            "description": "PHP/Composer environment setup guide",
        },
        "generatedFiles": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "path": {"type": "string"},
                    "content": {"type": "string"},
                },
                "required": ["path", "content"],
                "additionalProperties": False,
            },
        },
    },
    "required": [
        "phpStructure",
        "apiEndpoints",
        "reactUpdates",
        "setupGuide",
        "generatedFiles",
    ],
    "additionalProperties": False,
}


__all__ = [
    "ANALYSIS_SCHEMA",
    "ANALYZE_SYSTEM",
    "ANSWER_SCHEMA",
    "ASK_SYSTEM",
    "CONVERSION_FILE_LIMIT",
    "CONVERSION_SCHEMA",
    "CONVERSION_SUFFIXES",
    "CONVERT_BRIEF",
    "CONVERT_SYSTEM",
    "FILE_CHAR_LIMIT",
    "README_CHAR_LIMIT",
]
