"""Tests for the git backend with subprocess mocked out."""

import subprocess
import pytest
from pathlib import Path
from unittest.mock import patch
from branch_squash.core.types import (
    NoCommonAncestorError, NotARepositoryError, ReferenceUpdateError,
    Signature, StatusFlag, StoreError
)
from branch_squash.git.operations import (
    GitOperations, parse_commit, parse_rev_list_times, parse_signature,
    parse_status_code, parse_status_output
)


def completed(stdout="", returncode=0, stderr=""):
    return subprocess.CompletedProcess(args=["git"], returncode=returncode,
                                       stdout=stdout, stderr=stderr)


RAW_COMMIT = (
    "tree 4b825dc642cb6eb9a060e54bf8d69288fbee4904\n"
    "parent 1111111111111111111111111111111111111111\n"
    "parent 2222222222222222222222222222222222222222\n"
    "author Test User <test@example.com> 1700000000 +0100\n"
    "committer Other Person <other@example.com> 1700000100 -0500\n"
    "gpgsig -----BEGIN PGP SIGNATURE-----\n"
    " \n"
    " abcdef\n"
    " -----END PGP SIGNATURE-----\n"
    "\n"
    "real change\n"
    "\n"
    "Longer description.\n"
)


class TestStatusParsing:
    """Test porcelain status parsing."""

    @pytest.mark.parametrize("code,expected", [
        ("A ", StatusFlag.INDEX_NEW),
        ("M ", StatusFlag.INDEX_MODIFIED),
        ("D ", StatusFlag.INDEX_DELETED),
        ("R ", StatusFlag.INDEX_RENAMED),
        ("T ", StatusFlag.INDEX_TYPECHANGE),
        (" M", StatusFlag.WT_MODIFIED),
        (" D", StatusFlag.WT_DELETED),
        (" T", StatusFlag.WT_TYPECHANGE),
        (" A", StatusFlag.WT_NEW),
        ("??", StatusFlag.WT_NEW),
        ("!!", StatusFlag.IGNORED),
        ("UU", StatusFlag.CONFLICTED),
        ("AA", StatusFlag.CONFLICTED),
        ("DU", StatusFlag.CONFLICTED),
        ("MM", StatusFlag.INDEX_MODIFIED | StatusFlag.WT_MODIFIED),
    ])
    def test_parse_status_code(self, code, expected):
        assert parse_status_code(code) == expected

    def test_parse_status_output(self):
        output = "M  a.txt\0 M b.txt\0?? c.txt\0R  new.txt\0old.txt\0UU d.txt\0"

        state = parse_status_output(output)

        assert state.entries == {
            "a.txt": StatusFlag.INDEX_MODIFIED,
            "b.txt": StatusFlag.WT_MODIFIED,
            "c.txt": StatusFlag.WT_NEW,
            "new.txt": StatusFlag.INDEX_RENAMED,
            "d.txt": StatusFlag.CONFLICTED,
        }
        assert state.dirty_paths() == ["a.txt", "b.txt", "c.txt", "d.txt", "new.txt"]

    def test_parse_empty_output(self):
        assert parse_status_output("").is_clean

    def test_paths_with_spaces(self):
        state = parse_status_output(" M my file.txt\0")

        assert "my file.txt" in state.entries


class TestObjectParsing:
    """Test identity and commit parsing."""

    def test_parse_signature(self):
        sig = parse_signature("Test User <test@example.com> 1700000000 +0100\n")

        assert sig == Signature("Test User", "test@example.com", 1700000000, "+0100")
        assert sig.to_ident() == "Test User <test@example.com> 1700000000 +0100"

    def test_parse_signature_invalid(self):
        with pytest.raises(StoreError):
            parse_signature("no identity here")

    def test_parse_commit(self):
        commit = parse_commit("abc123", RAW_COMMIT)

        assert commit.tree == "4b825dc642cb6eb9a060e54bf8d69288fbee4904"
        assert commit.parents == ("1" * 40, "2" * 40)
        assert commit.author.offset == "+0100"
        assert commit.committer.name == "Other Person"
        assert commit.message == "real change\n\nLonger description.\n"
        assert commit.subject == "real change"

    def test_parse_malformed_commit(self):
        with pytest.raises(StoreError):
            parse_commit("abc123", "garbage\n\nmessage")

    def test_rev_list_times_skewed_clock(self):
        # f was committed with a clock behind its parent e
        output = "commit g\n150\ncommit f\n100\ncommit e\n200\n"

        assert parse_rev_list_times(output) == ["e", "g", "f"]

    def test_rev_list_times_ties_keep_graph_order(self):
        output = "commit g\n100\ncommit f\n100\ncommit e\n100\n"

        assert parse_rev_list_times(output) == ["g", "f", "e"]

    def test_rev_list_times_empty(self):
        assert parse_rev_list_times("") == []


@pytest.fixture
def mock_run():
    with patch('branch_squash.git.operations.subprocess.run') as run:
        run.return_value = completed("/tmp/repo\n")
        yield run


@pytest.fixture
def git_ops(mock_run):
    ops = GitOperations()
    mock_run.reset_mock()
    return ops


class TestGitOperations:
    """Test command construction and error translation."""

    def test_discovers_repository(self, git_ops):
        assert git_ops.repo_root == Path("/tmp/repo")

    def test_not_a_repository(self, mock_run):
        mock_run.side_effect = subprocess.CalledProcessError(
            128, ["git"], stderr="fatal: not a git repository")

        with pytest.raises(NotARepositoryError):
            GitOperations()

    def test_missing_git_executable(self, mock_run):
        mock_run.side_effect = FileNotFoundError("git")

        with pytest.raises(StoreError):
            GitOperations()

    def test_command_failure_chains_cause(self, git_ops, mock_run):
        error = subprocess.CalledProcessError(128, ["git"], stderr="fatal: bad object")
        mock_run.side_effect = error

        with pytest.raises(StoreError) as exc_info:
            git_ops.write_tree()

        assert exc_info.value.cause is error
        assert exc_info.value.__cause__ is error
        assert "bad object" in str(exc_info.value)

    def test_status_untracked_option(self, git_ops, mock_run):
        mock_run.return_value = completed("")
        git_ops.status()
        assert "--untracked-files=all" in mock_run.call_args.args[0]

        git_ops.config = git_ops.config.with_overrides(include_untracked=False)
        git_ops.status()
        assert "--untracked-files=no" in mock_run.call_args.args[0]

    def test_find_symbolic_branch(self, git_ops, mock_run):
        mock_run.return_value = completed("refs/heads/master\n")

        ref = git_ops.find_branch("alias")

        assert ref.is_symbolic
        assert ref.symbolic_target == "refs/heads/master"

    def test_find_direct_branch(self, git_ops, mock_run):
        mock_run.side_effect = [completed(returncode=1), completed("c" * 40 + "\n")]

        ref = git_ops.find_branch("master")

        assert not ref.is_symbolic
        assert ref.target == "c" * 40
        assert ref.name == "refs/heads/master"

    def test_find_missing_branch(self, git_ops, mock_run):
        mock_run.side_effect = [completed(returncode=1), completed(returncode=1)]

        with pytest.raises(StoreError, match="cannot locate local branch 'nope'"):
            git_ops.find_branch("nope")

    def test_unborn_head(self, git_ops, mock_run):
        mock_run.return_value = completed(returncode=1)

        with pytest.raises(StoreError):
            git_ops.resolve_head()

    def test_merge_base_without_common_ancestor(self, git_ops, mock_run):
        mock_run.return_value = completed(returncode=1)

        with pytest.raises(NoCommonAncestorError):
            git_ops.merge_base("a" * 40, "b" * 40)

    def test_merge_base_error(self, git_ops, mock_run):
        mock_run.return_value = completed(returncode=128, stderr="fatal: Not a valid object")

        with pytest.raises(StoreError) as exc_info:
            git_ops.merge_base("a" * 40, "b" * 40)

        assert not isinstance(exc_info.value, NoCommonAncestorError)

    def test_walk_command(self, git_ops, mock_run):
        mock_run.return_value = completed("commit g\n300\ncommit f\n200\ncommit e\n100\n")

        assert git_ops.walk(push=["g", "c"], hide=["c"]) == ["g", "f", "e"]
        assert mock_run.call_args.args[0] == [
            "git", "rev-list", "--date-order", "--format=%ct", "g", "c", "^c"]

    def test_soft_reset_with_expected(self, git_ops, mock_run):
        mock_run.return_value = completed()

        git_ops.soft_reset("new", expected="old", reason="squash: onto master")

        assert mock_run.call_args.args[0] == [
            "git", "update-ref", "-m", "squash: onto master", "HEAD", "new", "old"]

    def test_soft_reset_lost_race(self, git_ops, mock_run):
        mock_run.return_value = completed(returncode=128, stderr="cannot lock ref 'HEAD'")

        with pytest.raises(ReferenceUpdateError):
            git_ops.soft_reset("new", expected="old")

    def test_create_commit(self, git_ops, mock_run):
        mock_run.return_value = completed(b"d" * 40 + b"\n")
        sig = Signature("Test User", "test@example.com", 1700000000, "+0100")

        commit = git_ops.create_commit("t" * 40, ["p" * 40], "real change\n", sig, sig)

        assert commit == "d" * 40
        kwargs = mock_run.call_args.kwargs
        assert mock_run.call_args.args[0] == ["git", "commit-tree", "t" * 40, "-p", "p" * 40]
        assert kwargs["input"] == b"real change\n"
        assert "text" not in kwargs
        assert kwargs["env"]["GIT_AUTHOR_NAME"] == "Test User"
        assert kwargs["env"]["GIT_COMMITTER_DATE"] == "1700000000 +0100"

    def test_read_commit(self, git_ops, mock_run):
        mock_run.return_value = completed(RAW_COMMIT.encode('utf-8'))

        commit = git_ops.read_commit("e" * 40)

        assert commit.id == "e" * 40
        assert mock_run.call_args.args[0] == ["git", "cat-file", "commit", "e" * 40]

    def test_default_signature(self, git_ops, mock_run):
        mock_run.return_value = completed("Test User <test@example.com> 1700000000 +0000\n")

        assert git_ops.default_signature().email == "test@example.com"

    def test_current_branch_detached(self, git_ops, mock_run):
        mock_run.return_value = completed(returncode=1)

        assert git_ops.current_branch() is None

    def test_read_commit_keeps_crlf_message(self, git_ops, mock_run):
        header = RAW_COMMIT.partition("\n\n")[0].encode('utf-8')
        mock_run.return_value = completed(header + b"\n\nreal change\r\n\r\nbody line\r\n")

        commit = git_ops.read_commit("e" * 40)

        assert commit.message == "real change\r\n\r\nbody line\r\n"
        assert "text" not in mock_run.call_args.kwargs

    def test_latin1_message_written_back_unchanged(self, git_ops, mock_run):
        header = RAW_COMMIT.partition("\n\n")[0].encode('utf-8')
        mock_run.return_value = completed(header + b"\n\ncaf\xe9 change\n")
        commit = git_ops.read_commit("e" * 40)

        mock_run.return_value = completed(b"d" * 40 + b"\n")
        git_ops.create_commit("t" * 40, ["p" * 40], commit.message,
                              commit.author, commit.committer)

        assert mock_run.call_args.kwargs["input"] == b"caf\xe9 change\n"

    def test_binary_command_failure_decodes_stderr(self, git_ops, mock_run):
        mock_run.side_effect = subprocess.CalledProcessError(
            128, ["git"], stderr=b"fatal: bad object \xff")

        with pytest.raises(StoreError, match="bad object"):
            git_ops.read_commit("e" * 40)
