# =============================================================================
# core/prompts/architecture.py - Architecture Document Prompt
# =============================================================================
# Prompt used to turn a normalized repository tree into architecture.md.
#
# The model only sees file and directory names (no file contents), so the
# prompt insists that every claim be traceable to a visible path.
#
# Usage:
#   prompt = build_architecture_prompt("octocat/hello-world", repo_structure)
# =============================================================================

from __future__ import annotations

import json
from typing import Any

ARCHITECTURE_SYSTEM_PROMPT = (
    "You are an expert software architect. Generate clear, comprehensive "
    "architecture documentation for codebases. Be specific, cite actual files, "
    "and avoid assumptions."
)

ARCHITECTURE_PROMPT_TEMPLATE = """Analyze the GitHub repository structure below and write an accurate architecture.md document.

Repository: {repo_name}

Repository Structure:
{repo_structure}

<rules>
- Base every statement ONLY on files and directories present in the structure
- Do NOT invent technologies that are not clearly visible
- When something cannot be determined, write "Not visible in repository structure"
- Cite the files or folders that support each claim (e.g. "Based on api/pyproject.toml...")
</rules>

<sections>
1. **Project Overview**
   - Purpose of the project (inferred from the name, layout and visible routes)
   - Main features
   - Project type (monorepo, single application, library)

2. **Tech Stack** (only what file names and extensions confirm)
   - Languages and runtimes
   - Frameworks and UI libraries
   - Build tooling
   - Database and storage
   - Authentication
   - API style
   - Testing tools

3. **Architecture & Patterns**
   - Application architecture and module boundaries
   - Rendering or request handling strategy
   - Data fetching and state management
   - Code organization (feature-based, layer-based, ...)
   - Where authentication is enforced

4. **Project Structure**
   - Purpose of each top-level directory
   - Unusual organizational patterns
   - Configuration files and what they configure

5. **Key Features & Components**
   - User-facing routes or pages
   - Shared components
   - API endpoints
   - Services and utilities

6. **Data Flow & Integrations**
   - How data moves through the application
   - External services
   - Schema or migration files
   - Real-time features

7. **Development Setup**
   - Environment variables (from .env.example or config modules)
   - Installation and common scripts

8. **Deployment**
   - Deployment targets and configuration
   - Environment-specific settings
</sections>

<format>
Well-structured markdown with ## and ### headings, code blocks for paths and
commands, bullet lists, and tables where they help (e.g. environment
variables). Prefer "Unknown" over guessing.
</format>"""


def build_architecture_prompt(repo_name: str, repo_structure: dict[str, Any]) -> str:
    """
    Build the user prompt for architecture generation.

    Args:
        repo_name: Repository full name (owner/repo)
        repo_structure: Normalized RepoFile tree as a dict

    Returns:
        Prompt text
    """
    return ARCHITECTURE_PROMPT_TEMPLATE.format(
        repo_name=repo_name,
        repo_structure=json.dumps(repo_structure, indent=2),
    )
