"""Fake git operations for testing.

FakeGit is an in-memory commit graph implementing the Git interface. It
accepts pre-configured state in its constructor (usually produced by
tests.test_utils.builders.RepoBuilder) and models just enough of git for the
land engine: refs, remotes, tracking configuration, file trees, three-way
merges with conflicts, rebase, raw commit objects, stash and the state of
remote servers for fetch and push.
"""

import hashlib
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from gitland.core.git.abc import EMPTY_TREE_HASH, CommitIdentity, Git, RawCommit
from gitland.core.models import BranchUpstream
from gitland.core.subprocess import CommandResult

_IDENTITY_RE = re.compile(r"^(?P<name>.*) <(?P<email>.*)>(?: (?P<date>.*))?$")

OK = CommandResult(returncode=0, stdout="", stderr="")


def tree_id(files: Mapping[str, str]) -> str:
    """Content hash of a file mapping, standing in for a git tree object."""
    if not files:
        return EMPTY_TREE_HASH
    payload = "\0".join(f"{path}\0{content}" for path, content in sorted(files.items()))
    return hashlib.sha1(payload.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class FakeCommit:
    """A commit in the fake graph. files is the complete tree, not a delta."""

    files: dict[str, str]
    parents: tuple[str, ...]
    message: str
    author_name: str = "Test Author"
    author_email: str = "author@example.com"
    author_date: str = "1700000000 +0000"
    committer: str = "Test Committer <committer@example.com> 1700000000 +0000"

    @property
    def author(self) -> str:
        return f"{self.author_name} <{self.author_email}> {self.author_date}"

    @property
    def summary(self) -> str:
        return self.message.splitlines()[0] if self.message else ""

    def to_raw(self) -> RawCommit:
        return RawCommit(
            tree=tree_id(self.files),
            parents=self.parents,
            author=self.author,
            committer=self.committer,
            message=self.message,
        )

    @property
    def hash(self) -> str:
        return hashlib.sha1(self.to_raw().serialize().encode("utf-8")).hexdigest()


@dataclass
class _RebaseInProgress:
    branch: str
    head_branch: str | None
    detached_head: str | None


@dataclass
class _StashEntry:
    hash: str
    files: dict[str, str] = field(default_factory=dict)


def merge_trees(
    base: Mapping[str, str], ours: Mapping[str, str], theirs: Mapping[str, str]
) -> tuple[dict[str, str], list[str]]:
    """Three-way merge of file mappings. Returns (merged files, conflicting paths)."""
    merged: dict[str, str] = {}
    conflicts: list[str] = []
    for path in sorted(set(base) | set(ours) | set(theirs)):
        b, o, t = base.get(path), ours.get(path), theirs.get(path)
        if o == t:
            result = o
        elif b == o:
            result = t
        elif b == t:
            result = o
        else:
            conflicts.append(path)
            continue
        if result is not None:
            merged[path] = result
    return merged, conflicts


class FakeGit(Git):
    """In-memory fake implementation of git operations.

    This class has NO public setup methods. All state is provided via the
    constructor; read-only properties expose what happened for assertions.
    """

    def __init__(
        self,
        *,
        commits: Mapping[str, FakeCommit] | None = None,
        branches: Mapping[str, str] | None = None,
        remote_tracking: Mapping[str, str] | None = None,
        server_refs: Mapping[str, Mapping[str, str]] | None = None,
        upstreams: Mapping[str, BranchUpstream] | None = None,
        remotes: set[str] | None = None,
        perforce_remotes: set[str] | None = None,
        current_branch: str | None = None,
        detached_head: str | None = None,
        dirty_files: Mapping[str, str] | None = None,
        repository_root: Path | None = Path("/repo"),
        fetch_exit_code: int = 0,
        push_exit_code: int = 0,
        p4_sync_exit_code: int = 0,
        p4_submit_exit_code: int = 0,
        stash_pop_fails: bool = False,
    ) -> None:
        """Create FakeGit with pre-configured state.

        Args:
            commits: Mapping of commit hash -> FakeCommit
            branches: Mapping of local branch name -> commit hash
            remote_tracking: Mapping of "remote/ref" -> commit hash for
                refs/remotes/ (what the working copy last fetched)
            server_refs: Mapping of remote -> {ref: commit hash}, the state a
                fetch would download
            upstreams: Mapping of branch name -> configured upstream
            remotes: Remotes that can be fetched from and pushed to
            perforce_remotes: Remotes that are git-p4 bridges
            current_branch: Checked-out branch
            detached_head: Checked-out commit when no branch is checked out
            dirty_files: Uncommitted edits in the working copy
            repository_root: Root returned for any cwd (None: not a repository)
            fetch_exit_code: Exit code of every fetch
            push_exit_code: Exit code of every push
            p4_sync_exit_code: Exit code of every p4 sync
            p4_submit_exit_code: Exit code of every p4 submit
            stash_pop_fails: Make every stash pop fail
        """
        self._commits: dict[str, FakeCommit] = dict(commits or {})
        self._order: dict[str, int] = {h: i for i, h in enumerate(self._commits)}
        self._trees: dict[str, dict[str, str]] = {EMPTY_TREE_HASH: {}}
        for commit in self._commits.values():
            self._trees[tree_id(commit.files)] = dict(commit.files)

        self._branches: dict[str, str] = dict(branches or {})
        self._remote_tracking: dict[str, str] = dict(remote_tracking or {})
        self._server_refs: dict[str, dict[str, str]] = {
            remote: dict(refs) for remote, refs in (server_refs or {}).items()
        }
        self._upstreams: dict[str, BranchUpstream] = dict(upstreams or {})
        self._remotes = set(remotes or set())
        self._perforce_remotes = set(perforce_remotes or set())
        self._head_branch = current_branch
        self._detached_head = detached_head
        self._dirty_files: dict[str, str] = dict(dirty_files or {})
        self._repository_root = repository_root

        self._fetch_exit_code = fetch_exit_code
        self._push_exit_code = push_exit_code
        self._p4_sync_exit_code = p4_sync_exit_code
        self._p4_submit_exit_code = p4_submit_exit_code
        self._stash_pop_fails = stash_pop_fails

        self._staged: dict[str, str] | None = None
        self._merge_head: str | None = None
        self._rebase: _RebaseInProgress | None = None
        self._stashes: list[_StashEntry] = []

        self._checkout_calls: list[str] = []
        self._fetch_calls: list[tuple[str, str]] = []
        self._push_calls: list[tuple[str, list[str]]] = []
        self._p4_sync_calls: list[str] = []
        self._p4_submit_calls: list[str] = []
        self._deleted_branches: list[str] = []
        self._updated_branches: list[tuple[str, str]] = []
        self._rebase_calls: list[tuple[str, str, str]] = []

    # ------------------------------------------------------------------
    # Repository queries
    # ------------------------------------------------------------------

    def get_repository_root(self, cwd: Path) -> Path | None:
        return self._repository_root

    def get_current_branch(self, repo_root: Path) -> str | None:
        return self._head_branch

    def get_head_commit(self, repo_root: Path) -> str | None:
        if self._head_branch is not None:
            return self._branches.get(self._head_branch)
        return self._detached_head

    def resolve_commit(self, repo_root: Path, ref: str) -> str | None:
        if ref == "HEAD":
            return self.get_head_commit(repo_root)
        if ref.startswith("refs/heads/"):
            return self._branches.get(ref.removeprefix("refs/heads/"))
        if ref.startswith("refs/remotes/"):
            return self._remote_tracking.get(ref.removeprefix("refs/remotes/"))
        if ref in self._branches:
            return self._branches[ref]
        if ref in self._remote_tracking:
            return self._remote_tracking[ref]
        if ref in self._commits:
            return ref
        if len(ref) >= 4:
            matches = [h for h in self._commits if h.startswith(ref)]
            if len(matches) == 1:
                return matches[0]
        return None

    def list_refs(self, repo_root: Path, commit: str, *, contains: bool) -> list[str]:
        lines = []
        for ref_name, ref_hash in sorted(self._all_refs().items()):
            if contains:
                matches = commit in self._ancestors(ref_hash)
            else:
                matches = ref_hash == commit
            if matches:
                lines.append(f"{ref_name} {ref_hash}")
        return lines

    def log_commits(self, repo_root: Path, commit: str, *, exclude: str | None) -> str:
        reachable = self._ancestors(commit)
        if exclude is not None:
            reachable -= self._ancestors(exclude)
        ordered = sorted(reachable, key=lambda h: self._order[h], reverse=True)
        lines = []
        for commit_hash in ordered:
            fake = self._commits[commit_hash]
            lines.append(f"{commit_hash}\0{' '.join(fake.parents)}\0{fake.summary}\0")
        return "\n".join(lines)

    def get_commit_message(self, repo_root: Path, commit: str) -> str:
        return self._require_commit(commit).message

    def get_commit_identity(self, repo_root: Path, commit: str) -> CommitIdentity:
        fake = self._require_commit(commit)
        return CommitIdentity(
            name=fake.author_name, email=fake.author_email, date=fake.author_date
        )

    def diff(self, repo_root: Path, from_commit: str, to_commit: str) -> str:
        before = self._require_commit(from_commit).files
        after = self._require_commit(to_commit).files
        lines = []
        for path in sorted(set(before) | set(after)):
            if path not in before:
                lines.append(f"A\t{path}")
            elif path not in after:
                lines.append(f"D\t{path}")
            elif before[path] != after[path]:
                lines.append(f"M\t{path}")
        return "\n".join(lines)

    def get_merge_base(self, repo_root: Path, first: str, second: str) -> str | None:
        first_hash = self.resolve_commit(repo_root, first)
        second_hash = self.resolve_commit(repo_root, second)
        if first_hash is None or second_hash is None:
            return None
        common = self._ancestors(first_hash) & self._ancestors(second_hash)
        if not common:
            return None
        return max(common, key=lambda h: self._order[h])

    def read_raw_commit(self, repo_root: Path, commit: str) -> RawCommit:
        return self._require_commit(commit).to_raw()

    def write_raw_commit(self, repo_root: Path, raw_commit: RawCommit) -> str:
        if raw_commit.tree not in self._trees:
            raise RuntimeError(f"Unknown tree object: {raw_commit.tree}")
        author = _IDENTITY_RE.match(raw_commit.author)
        if author is None:
            raise RuntimeError(f"Malformed author line: {raw_commit.author}")
        fake = FakeCommit(
            files=dict(self._trees[raw_commit.tree]),
            parents=raw_commit.parents,
            message=raw_commit.message,
            author_name=author.group("name"),
            author_email=author.group("email"),
            author_date=author.group("date") or "",
            committer=raw_commit.committer,
        )
        return self._store(fake)

    # ------------------------------------------------------------------
    # Remotes and tracking configuration
    # ------------------------------------------------------------------

    def get_branch_upstream(self, repo_root: Path, branch: str) -> BranchUpstream | None:
        return self._upstreams.get(branch)

    def is_pushable_remote(self, repo_root: Path, remote: str) -> bool:
        return remote in self._remotes

    def is_fetchable_remote(self, repo_root: Path, remote: str) -> bool:
        return remote in self._remotes

    def is_perforce_remote(self, repo_root: Path, remote: str) -> bool:
        return remote in self._perforce_remotes

    # ------------------------------------------------------------------
    # Working copy mutations
    # ------------------------------------------------------------------

    def checkout(self, repo_root: Path, ref: str) -> None:
        self._checkout_calls.append(ref)
        if ref in self._branches:
            self._head_branch = ref
            self._detached_head = None
        else:
            commit = self.resolve_commit(repo_root, ref)
            if commit is None:
                raise RuntimeError(f"Failed to checkout '{ref}': pathspec did not match")
            self._head_branch = None
            self._detached_head = commit
        self._staged = None
        self._merge_head = None

    def update_branch(self, repo_root: Path, branch: str, commit: str) -> None:
        if branch == self._head_branch:
            raise RuntimeError(f"Cannot force update the current branch '{branch}'")
        resolved = self.resolve_commit(repo_root, commit)
        if resolved is None:
            raise RuntimeError(f"Unknown revision: {commit}")
        self._updated_branches.append((branch, resolved))
        self._branches[branch] = resolved

    def delete_branch(self, repo_root: Path, branch: str) -> None:
        if branch not in self._branches:
            raise RuntimeError(f"Branch '{branch}' not found")
        if branch == self._head_branch:
            raise RuntimeError(f"Cannot delete branch '{branch}' checked out")
        del self._branches[branch]
        self._upstreams.pop(branch, None)
        self._deleted_branches.append(branch)

    def merge(
        self,
        repo_root: Path,
        commit: str,
        *,
        squash: bool,
        allow_unrelated_histories: bool,
    ) -> CommandResult:
        head = self._require_head()
        base = self.get_merge_base(repo_root, head, commit)
        if base is None and not allow_unrelated_histories:
            return CommandResult(128, "", "fatal: refusing to merge unrelated histories")

        base_files = self._commits[base].files if base is not None else {}
        merged, conflicts = merge_trees(
            base_files, self._commits[head].files, self._require_commit(commit).files
        )
        if conflicts:
            if not squash:
                self._merge_head = commit
            return CommandResult(
                1,
                "",
                "".join(f"CONFLICT (content): Merge conflict in {path}\n" for path in conflicts),
            )

        self._staged = merged
        self._merge_head = None if squash else commit
        return OK

    def abort_merge(self, repo_root: Path) -> CommandResult:
        if self._merge_head is None:
            return CommandResult(128, "", "fatal: There is no merge to abort (MERGE_HEAD missing).")
        self._merge_head = None
        self._staged = None
        return OK

    def reset_hard(self, repo_root: Path, ref: str) -> CommandResult:
        commit = self.resolve_commit(repo_root, ref)
        if commit is None:
            return CommandResult(128, "", f"fatal: ambiguous argument '{ref}'")
        self._move_head(commit)
        self._staged = None
        self._merge_head = None
        self._dirty_files = {}
        return OK

    def commit(self, repo_root: Path, *, author: str, date: str, message: str) -> None:
        head = self._require_head()
        if self._staged is None:
            raise RuntimeError("Failed to commit landed changes: nothing to commit")
        if self._merge_head is None and self._staged == self._commits[head].files:
            raise RuntimeError("Failed to commit landed changes: nothing to commit")

        identity = _IDENTITY_RE.match(author)
        if identity is None:
            raise RuntimeError(f"Malformed author: {author}")

        parents = (head,) if self._merge_head is None else (head, self._merge_head)
        fake = FakeCommit(
            files=self._staged,
            parents=parents,
            message=message,
            author_name=identity.group("name"),
            author_email=identity.group("email"),
            author_date=date,
            committer=self._next_committer(),
        )
        self._move_head(self._store(fake))
        self._staged = None
        self._merge_head = None

    def rebase_onto(
        self,
        repo_root: Path,
        *,
        new_base: str,
        upstream: str,
        branch: str,
    ) -> CommandResult:
        self._rebase_calls.append((new_base, upstream, branch))
        branch_head = self._branches[branch]
        saved = _RebaseInProgress(
            branch=branch, head_branch=self._head_branch, detached_head=self._detached_head
        )

        to_replay = [
            h
            for h in sorted(
                self._ancestors(branch_head) - self._ancestors(upstream),
                key=lambda h: self._order[h],
            )
            if len(self._commits[h].parents) <= 1
        ]

        cursor = new_base
        for commit_hash in to_replay:
            picked = self._commits[commit_hash]
            parent_files = self._commits[picked.parents[0]].files if picked.parents else {}
            merged, conflicts = merge_trees(parent_files, self._commits[cursor].files, picked.files)
            if conflicts:
                self._rebase = saved
                self._head_branch = None
                self._detached_head = cursor
                return CommandResult(
                    1, "", f"CONFLICT (content): Merge conflict in {conflicts[0]}\n"
                )
            if merged == self._commits[cursor].files:
                # Already applied upstream; git drops the commit.
                continue
            cursor = self._store(
                FakeCommit(
                    files=merged,
                    parents=(cursor,),
                    message=picked.message,
                    author_name=picked.author_name,
                    author_email=picked.author_email,
                    author_date=picked.author_date,
                    committer=self._next_committer(),
                )
            )

        self._branches[branch] = cursor
        self._head_branch = branch
        self._detached_head = None
        return OK

    def abort_rebase(self, repo_root: Path) -> CommandResult:
        if self._rebase is None:
            return CommandResult(128, "", "fatal: No rebase in progress?")
        self._head_branch = self._rebase.head_branch
        self._detached_head = self._rebase.detached_head
        self._rebase = None
        return OK

    # ------------------------------------------------------------------
    # Uncommitted work
    # ------------------------------------------------------------------

    def has_uncommitted_changes(self, repo_root: Path) -> bool:
        return bool(self._dirty_files)

    def stash_push(self, repo_root: Path, message: str) -> str:
        head = self._require_head()
        files = {**self._commits[head].files, **self._dirty_files}
        stash_hash = self._store(
            FakeCommit(
                files=files,
                parents=(head,),
                message=message,
                committer=self._next_committer(),
            )
        )
        self._stashes.insert(0, _StashEntry(hash=stash_hash, files=self._dirty_files))
        self._dirty_files = {}
        return stash_hash

    def stash_pop(self, repo_root: Path, stash_commit: str) -> CommandResult:
        if self._stash_pop_fails:
            return CommandResult(1, "", "error: could not restore untracked files from stash")
        for entry in self._stashes:
            if entry.hash == stash_commit:
                self._stashes.remove(entry)
                self._dirty_files = {**self._dirty_files, **entry.files}
                return OK
        return CommandResult(1, "", f"'{stash_commit}' is not a stash-like commit")

    # ------------------------------------------------------------------
    # Network operations
    # ------------------------------------------------------------------

    def fetch(self, repo_root: Path, remote: str, ref: str) -> int:
        self._fetch_calls.append((remote, ref))
        if self._fetch_exit_code:
            return self._fetch_exit_code
        server = self._server_refs.get(remote, {})
        if ref not in server:
            return 128
        self._remote_tracking[f"{remote}/{ref}"] = server[ref]
        return 0

    def push(self, repo_root: Path, remote: str, refspecs: list[str]) -> int:
        self._push_calls.append((remote, list(refspecs)))
        if self._push_exit_code:
            return self._push_exit_code
        server = self._server_refs.setdefault(remote, {})
        for refspec in refspecs:
            commit, _, ref = refspec.partition(":")
            server[ref] = commit
            self._remote_tracking[f"{remote}/{ref}"] = commit
        return 0

    def p4_sync(self, repo_root: Path, branch: str) -> int:
        self._p4_sync_calls.append(branch)
        if self._p4_sync_exit_code:
            return self._p4_sync_exit_code
        remote, _, ref = branch.partition("/")
        server = self._server_refs.get(remote, {})
        if ref in server:
            self._remote_tracking[branch] = server[ref]
        return 0

    def p4_submit(self, repo_root: Path, commit: str) -> int:
        self._p4_submit_calls.append(commit)
        return self._p4_submit_exit_code

    # ------------------------------------------------------------------
    # Read-only state for assertions
    # ------------------------------------------------------------------

    @property
    def branches(self) -> dict[str, str]:
        return dict(self._branches)

    @property
    def remote_tracking(self) -> dict[str, str]:
        return dict(self._remote_tracking)

    def server_refs(self, remote: str) -> dict[str, str]:
        return dict(self._server_refs.get(remote, {}))

    @property
    def current_branch(self) -> str | None:
        return self._head_branch

    @property
    def head_commit(self) -> str | None:
        return self.get_head_commit(Path("/"))

    @property
    def dirty_files(self) -> dict[str, str]:
        return dict(self._dirty_files)

    @property
    def stash_count(self) -> int:
        return len(self._stashes)

    @property
    def checkout_calls(self) -> list[str]:
        return list(self._checkout_calls)

    @property
    def fetch_calls(self) -> list[tuple[str, str]]:
        return list(self._fetch_calls)

    @property
    def push_calls(self) -> list[tuple[str, list[str]]]:
        return list(self._push_calls)

    @property
    def p4_sync_calls(self) -> list[str]:
        return list(self._p4_sync_calls)

    @property
    def p4_submit_calls(self) -> list[str]:
        return list(self._p4_submit_calls)

    @property
    def deleted_branches(self) -> list[str]:
        return list(self._deleted_branches)

    @property
    def updated_branches(self) -> list[tuple[str, str]]:
        return list(self._updated_branches)

    @property
    def rebase_calls(self) -> list[tuple[str, str, str]]:
        return list(self._rebase_calls)

    def commit_of(self, commit: str) -> FakeCommit:
        return self._require_commit(commit)

    def files_at(self, ref: str) -> dict[str, str]:
        commit = self.resolve_commit(Path("/"), ref)
        if commit is None:
            raise KeyError(ref)
        return dict(self._commits[commit].files)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _all_refs(self) -> dict[str, str]:
        refs = {f"refs/heads/{name}": h for name, h in self._branches.items()}
        refs.update({f"refs/remotes/{name}": h for name, h in self._remote_tracking.items()})
        return refs

    def _ancestors(self, commit: str) -> set[str]:
        start = self.resolve_commit(Path("/"), commit)
        if start is None:
            raise RuntimeError(f"Unknown revision: {commit}")
        seen: set[str] = set()
        stack = [start]
        while stack:
            current = stack.pop()
            if current in seen:
                continue
            seen.add(current)
            stack.extend(self._commits[current].parents)
        return seen

    def _require_commit(self, commit: str) -> FakeCommit:
        resolved = self.resolve_commit(Path("/"), commit)
        if resolved is None:
            raise RuntimeError(f"Unknown revision: {commit}")
        return self._commits[resolved]

    def _require_head(self) -> str:
        head = self.get_head_commit(Path("/"))
        if head is None:
            raise RuntimeError("HEAD does not point at a commit")
        return head

    def _move_head(self, commit: str) -> None:
        if self._head_branch is not None:
            self._branches[self._head_branch] = commit
        else:
            self._detached_head = commit

    def _next_committer(self) -> str:
        return f"Test Committer <committer@example.com> {1700000000 + len(self._order)} +0000"

    def _store(self, fake: FakeCommit) -> str:
        commit_hash = fake.hash
        if commit_hash not in self._commits:
            self._commits[commit_hash] = fake
            self._order[commit_hash] = len(self._order)
            self._trees[tree_id(fake.files)] = dict(fake.files)
        return commit_hash
