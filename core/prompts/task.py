# =============================================================================
# core/prompts/task.py - Task Generation Prompt
# =============================================================================
# Prompt used to turn an architecture document plus a feature request into
# an implementation plan. The document must start with "# Task: <title>";
# the title is extracted from that line.
# =============================================================================

from __future__ import annotations

TASK_SYSTEM_PROMPT = (
    "You are an expert software architect and technical lead. Generate clear, "
    "actionable task breakdowns for software features. Be specific about file "
    "locations and implementation details."
)

TASK_PROMPT_TEMPLATE = """You are a senior software engineer writing an implementation plan. Using the architecture documentation for "{repo_name}", write a task document for the requested feature.

<architecture>
{architecture_markdown}
</architecture>

<feature_request>
{feature_description}
</feature_request>

Write the task document with exactly this structure (no emojis, no decorative formatting):

# Task: [Descriptive title]

## Goal

[One paragraph: what the feature does and why]

## Requirements

- [Functional requirement]
- [Add as many as needed]

## Implementation Steps

### Step 1: [Step title]

Files: `path/to/file`

[What to change in this step, specifically]

[Continue with 4-8 steps in a logical order. Include code snippets where useful.]

## Database Changes

[New tables, columns or migrations, with SQL if relevant. Write "None" if not applicable.]

## Files to Create or Modify

| File | Action | Purpose |
|------|--------|---------|
| `path/to/file` | Create | [Purpose] |
| `path/to/existing` | Modify | [Change] |

## Testing

- Unit tests: [What to test]
- Integration tests: [Flows to test]
- Manual verification: [How to check it works]

## Considerations

- [Edge cases]
- [Security]
- [Performance]
- [Migrations or breaking changes]

## Done When

- [ ] [Completion criterion]
- [ ] [All tests pass]

<rules>
1. Use ONLY file paths and patterns that appear in the architecture documentation
2. Do NOT introduce frameworks or tools the architecture does not mention
3. Follow the existing conventions of the codebase
4. Reference real directories, not generic placeholders
5. Keep the document clean and professional
6. Write like a senior engineer, not like a tutorial
</rules>"""


def build_task_prompt(
    architecture_markdown: str,
    feature_description: str,
    repo_name: str,
) -> str:
    """
    Build the user prompt for task generation.

    Args:
        architecture_markdown: The snapshot's architecture document
        feature_description: What the user wants to build
        repo_name: Repository full name (owner/repo)

    Returns:
        Prompt text
    """
    return TASK_PROMPT_TEMPLATE.format(
        repo_name=repo_name,
        architecture_markdown=architecture_markdown,
        feature_description=feature_description,
    )
