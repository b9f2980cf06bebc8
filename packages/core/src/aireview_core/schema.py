"""JSON schema every reviewer is asked to answer with.

Codex receives it as an --output-schema file; the other reviewers see it inlined in the prompt.
"""

REVIEW_SCHEMA: dict = {
    "type": "object",
    "additionalProperties": False,
    "required": ["status", "summary", "findings"],
    "properties": {
        "status": {"type": "string", "enum": ["pass", "fail"]},
        "summary": {"type": "string", "minLength": 1},
        "findings": {
            "type": "array",
            "items": {
                "type": "object",
                "additionalProperties": False,
                "required": ["severity", "title", "details"],
                "properties": {
                    "severity": {"type": "string"},
                    "title": {"type": "string"},
                    "details": {"type": "string"},
                    "file": {"type": "string"},
                    "line": {"type": "integer", "minimum": 1},
                },
            },
        },
    },
}
