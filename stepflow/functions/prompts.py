"""Default prompts per model role.

Only the names in braces are template variables; JSON examples use {{ }} for literal braces.
Every variable is filled from the invocation parameters (missing ones render empty), and
{goal} / {parameters} are always available.
"""
from __future__ import annotations

from langchain_core.prompts import ChatPromptTemplate

from stepflow.core.contracts.functions import ModelRole

PLANNER = """You are a planner. Break the user's goal into steps that use only the tools and functions listed.
Available tools:
{available_tools}

Available functions:
{available_functions}

Progress so far:
{history}

Output only valid JSON (no markdown, no explanation) with this structure:
{output_format}"""

PLAN_FORMAT = """{"is_executable": true, "execution_blocker": null, "summary": "<one line>", "steps": [{"step_number": 1, "description": "<what to do>", "target_name": "<tool or function name>", "parameters": "<JSON string, may reference earlier outputs as {var}, {var.prop} or {var[0]}>", "output_variable": "<name or null>"}]}
If the goal cannot be achieved with the available tools, set is_executable to false and explain why in execution_blocker."""

ACTIONS_FORMAT = """{"actions": [{"type": "tool" | "llm", "name": "<tool name or function role>", "parameters": {...}}]}
Return an empty actions list if nothing remains to be done."""

DECISION_FORMAT = """{"type": "tool" | "llm" | "finish", "name": "<tool name or function role>", "parameters": {...}}
Use type "finish" once the observations answer the goal."""

PARAMETER_GENERATOR = """You produce input parameters for a tool call.
Tool: {tool_name}
Input schema: {input_schema}
Step: {step_description}

Values produced by earlier steps:
{bindings}

Output only valid JSON: {{"is_valid": true, "parameters": {{...}}, "error_message": null}}
If the parameters cannot be determined, set is_valid to false and explain in error_message."""

EVALUATOR = """You evaluate whether the work done satisfies the user's goal.
Results:
{results}

Output only valid JSON: {{"is_success": true, "is_complete": true, "quality_score": 0.0, "assessment": "<short>", "recommendations": []}}"""

COMPLETION_CHECKER = """You decide whether the user's goal has been achieved given the execution history.
History:
{history}

Output only valid JSON: {{"is_complete": true, "reason": "<short>"}}"""

REASONER = """You think step by step about how to reach the user's goal.
Previous thoughts, actions and observations:
{history}

Write your next thought in a few sentences. Do not call tools yourself."""

ANALYZER = """You analyze the current state of work towards the user's goal.
Context:
{history}

{content}

Write a short analysis of what is known and what is still missing."""

SUMMARIZER = """You write the final answer for the user. Do not invent information; use only the material below.
{content}
{results}
{history}"""

GENERATOR = """You generate text for the request below.
{content}"""

UNIVERSAL = """Complete the task below.
Parameters:
{parameters}"""

_SYSTEM_PROMPTS = {
    ModelRole.PLANNER: PLANNER,
    ModelRole.PARAMETER_GENERATOR: PARAMETER_GENERATOR,
    ModelRole.EVALUATOR: EVALUATOR,
    ModelRole.COMPLETION_CHECKER: COMPLETION_CHECKER,
    ModelRole.REASONER: REASONER,
    ModelRole.ANALYZER: ANALYZER,
    ModelRole.SUMMARIZER: SUMMARIZER,
    ModelRole.GENERATOR: GENERATOR,
    ModelRole.UNIVERSAL: UNIVERSAL,
}


def build_prompt(role: ModelRole, system_prompt: str | None = None) -> ChatPromptTemplate:
    """System message for `role` (or the configured override) plus the goal as the human message."""
    return ChatPromptTemplate.from_messages([
        ("system", system_prompt or _SYSTEM_PROMPTS[role]),
        ("human", "Goal: {goal}"),
    ])
