#!/usr/bin/env python3
# =============================================================================
# scripts/preview_architecture.py - Generate architecture.md Locally
# =============================================================================
# Fetches a repository tree from GitHub, normalizes it, and prints the
# generated architecture document. Nothing is written to Supabase, so this
# is handy for tuning prompts against real repositories.
#
# Usage:
#   python scripts/preview_architecture.py owner/repo [branch]
#
# Prerequisites:
#   - GITHUB_TOKEN in the environment (any token with repo read access)
#   - LLM provider settings in .env (LLM_PROVIDER, OPENAI_API_KEY, ...)
# =============================================================================

import os
import sys

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv
load_dotenv()

from app.exceptions import ArchAssistantException
from core.services.github_service import GitHubService
from core.services.llm_service import LLMService


def main():
    if len(sys.argv) < 2:
        print("Usage: python scripts/preview_architecture.py owner/repo [branch]")
        sys.exit(1)

    repo_name = sys.argv[1]
    branch = sys.argv[2] if len(sys.argv) > 2 else None
    token = os.environ.get("GITHUB_TOKEN")
    if not token:
        print("GITHUB_TOKEN is not set")
        sys.exit(1)

    try:
        with GitHubService() as github:
            tree = github.fetch_repo_tree(repo_name, token, branch)
        structure = GitHubService.normalize_repo_structure(tree)

        file_count = sum(1 for _ in structure.iter_files())
        print(f"Fetched {file_count} files from {repo_name}", file=sys.stderr)

        markdown = LLMService().generate_architecture_markdown(repo_name, structure.to_json())
    except ArchAssistantException as e:
        print(f"Error: {e.message}", file=sys.stderr)
        sys.exit(1)

    print(markdown)


if __name__ == "__main__":
    main()
