"""Initialize golint-ai in a repository."""

from pathlib import Path
from typing import Optional


WORKFLOW_TEMPLATE = '''name: golint-ai

on:
  pull_request:
    types: [opened, synchronize, reopened]

permissions:
  contents: read
  pull-requests: write

jobs:
  lint:
    name: Go defect scan
    runs-on: ubuntu-latest

    steps:
      - uses: actions/checkout@v4

      - uses: actions/setup-python@v5
        with:
          python-version: "3.12"

      - name: Install golint-ai
        run: pip install golint-ai

      - name: Scan
        env:
          GITHUB_TOKEN: ${{ secrets.GITHUB_TOKEN }}
          ANTHROPIC_API_KEY: ${{ secrets.ANTHROPIC_API_KEY }}
        run: |
          golint-ai scan . \\
            --github-repo "${{ github.repository }}" \\
            --pr-number "${{ github.event.pull_request.number }}"
'''


def init_repository(target_dir: Optional[Path] = None) -> bool:
    """
    Initialize golint-ai in a repository.

    Creates:
      - .github/workflows/golint-ai.yml
    """
    target = target_dir or Path.cwd()

    # Check if git repo
    if not (target / ".git").exists():
        print(f"Error: {target} is not a git repository")
        return False

    workflow_dir = target / ".github" / "workflows"
    workflow_dir.mkdir(parents=True, exist_ok=True)

    workflow_file = workflow_dir / "golint-ai.yml"
    if workflow_file.exists():
        print(f"Already exists: {workflow_file}")
        print("\nAlready configured. No changes needed.")
        return True

    workflow_file.write_text(WORKFLOW_TEMPLATE)
    print(f"Created: {workflow_file}")
    print("\nNext steps:")
    print("  1. Add ANTHROPIC_API_KEY to the repository secrets")
    print("  2. git add .github && git commit -m 'Add golint-ai'")
    print("  3. git push")
    return True
