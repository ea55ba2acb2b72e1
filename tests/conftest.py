"""Shared fixtures: in-memory repositories with ready-made histories."""

import pytest
from branch_squash import MemoryRepository


@pytest.fixture
def memory_repo():
    """Repository with master at A -> B -> C and HEAD on master."""
    repo = MemoryRepository()
    ids = {
        "A": repo.commit_files("A", {"README.md": "# Test Repository\n"}),
        "B": repo.commit_files("B", {"src/app.js": "Lorem ipsum dolor sit amet."}),
        "C": repo.commit_files("C", {"docs/API.md": "Consectetur adipiscing elit."}),
    }
    repo.ids = ids
    return repo


@pytest.fixture
def feature_repo(memory_repo):
    """master at C, feature at G with E, F, G unique; HEAD on feature.

    E carries the message "real change", F and G are fixups.
    """
    repo = memory_repo
    repo.create_branch("feature")
    repo.checkout("feature")
    repo.ids["E"] = repo.commit_files("real change", {"src/app.js": "Lorem ipsum v2"})
    repo.ids["F"] = repo.commit_files("fixup typo", {"src/app.js": "Lorem ipsum v3"})
    repo.ids["G"] = repo.commit_files("fixup tests", {"tests/app.test.js": "test"})
    return repo
