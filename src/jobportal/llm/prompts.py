from __future__ import annotations

import json

from jobportal.types import Application, JobPosting

REVIEW_INSTRUCTIONS = (
    "Review the following applicant's application and provide a decision based on the "
    "qualifications provided. NOTE: name and any personal information was redacted"
)

REVIEW_DECISION_GUIDE = (
    "Set decision to exactly one of: Qualified, Not Qualified, Human Review Requested. "
    "Use Human Review Requested when the documents are missing or ambiguous. "
    "Explain the decision against each minimum qualification in reasoningLog."
)

JOB_CONTEXT_HEADER = "Also consider the job posting details: "

REVIEW_RESPONSE_SCHEMA: dict = {
    "type": "object",
    "properties": {
        "applicantId": {
            "type": "string",
            "description": "The unique identifier of the applicant being reviewed.",
        },
        "jobId": {"type": "string", "description": "The unique identifier of the job posting."},
        "reviewType": {
            "type": "string",
            "description": "Type of review conducted by AI. either AI_screen or Human",
        },
        "decision": {
            "type": "string",
            "description": "The decision made by the AI reviewer: Qualified, Not Qualified, Human Review Requested",
        },
        "reviewTimestamp": {
            "type": "string",
            "format": "date-time",
            "description": "The timestamp when the review was conducted.",
        },
        "reviewerId": {
            "type": ["string", "null"],
            "description": "The unique identifier of the human reviewer if needed. if ai reviewed set as null",
        },
        "reasoningLog": {
            "type": "string",
            "description": "Detailed reasoning behind the AI's decision.",
        },
        "isFinalDecision": {
            "type": "boolean",
            "description": "Indicates if this decision is final or if further review is needed. leave as always false",
        },
    },
    "required": [
        "reviewType",
        "decision",
        "reviewTimestamp",
        "reviewerId",
        "reasoningLog",
        "isFinalDecision",
    ],
}


def build_review_prompt(application: Application, job: JobPosting) -> list[str]:
    return [
        REVIEW_INSTRUCTIONS,
        json.dumps(application.prompt_payload(), ensure_ascii=True),
        JOB_CONTEXT_HEADER,
        json.dumps(job.to_document(), ensure_ascii=True),
        REVIEW_DECISION_GUIDE,
    ]
