"""Gateway onto a local git repository, backed by dulwich.

Hashes are computed by dulwich exactly as git (and GitHub) computes
them, so a sync against a local store behaves identically to a sync
against a remote one: identical content yields identical hashes.

dulwich reads and writes synchronously, so every request runs in a
worker thread via :func:`asyncio.to_thread`; concurrent blob creation
does not block the event loop.
"""

from __future__ import annotations

import asyncio
import logging
import time as _time
from collections.abc import Iterable
from pathlib import Path

from dulwich.objects import Blob as _DBlob
from dulwich.objects import Commit as _DCommit
from dulwich.objects import Tree as _DTree
from dulwich.repo import MemoryRepo as _DMemoryRepo
from dulwich.repo import Repo as _DRepo

from .._trace import describe_params, get_logger, trace
from ..exceptions import DuplicateRequestError, NotFoundError, StaleBranchError, StoreError
from ..objects import (
    Commit,
    PullRequest,
    Reference,
    Tree,
    TreeEntry,
    branch_ref,
    object_type_for_mode,
)

PULL_REQUEST_PREFIX = "refs/pulls/"


def _full_ref(ref: str) -> bytes:
    """``heads/main`` -> ``b"refs/heads/main"``."""
    if not ref.startswith("refs/"):
        ref = f"refs/{ref}"
    return ref.encode()


class DulwichGateway:
    """Content-addressed store on a dulwich ``Repo`` or ``MemoryRepo``.

    Pull requests have no native git representation; they are recorded as
    references ``refs/pulls/<base>/<head>`` pointing at the head commit.
    """

    def __init__(
        self,
        repo: _DRepo | _DMemoryRepo,
        *,
        author: str = "treesync",
        email: str = "treesync@localhost",
        logger: logging.Logger | None = None,
    ):
        self._repo = repo
        self._identity = f"{author} <{email}>".encode()
        self._log = get_logger(logger)

    def __repr__(self) -> str:
        path = getattr(self._repo, "path", None)
        return f"DulwichGateway({path!r})" if path else "DulwichGateway(<memory>)"

    @classmethod
    def open(cls, path: str | Path, *, logger: logging.Logger | None = None) -> DulwichGateway:
        """Open an existing bare repository; raise FileNotFoundError if missing."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Repository not found: {path}")
        return cls(_DRepo(str(path)), logger=logger)

    @classmethod
    def init(
        cls,
        path: str | Path | None = None,
        *,
        branch: str | None = "main",
        logger: logging.Logger | None = None,
    ) -> DulwichGateway:
        """Create a bare repository (in memory when *path* is None).

        When *branch* is given, it is created with one empty commit, the
        same way a freshly initialised hosted repository starts out.
        """
        if path is None:
            repo = _DMemoryRepo()
        else:
            path = Path(path)
            if path.exists():
                raise FileExistsError(f"Repository already exists: {path}")
            repo = _DRepo.init_bare(str(path), mkdir=True)
        gw = cls(repo, logger=logger)
        if branch is not None:
            empty = _DTree()
            repo.object_store.add_object(empty)
            commit = gw._write_commit(f"Initialize {branch}", empty.id, [])
            repo.refs[_full_ref(branch_ref(branch))] = commit.id
            repo.refs.set_symbolic_ref(b"HEAD", _full_ref(branch_ref(branch)))
        return gw

    @property
    def repo(self) -> _DRepo | _DMemoryRepo:
        """The underlying dulwich repository."""
        return self._repo

    # -- helpers ------------------------------------------------------------

    def _record(self, name: str, **params) -> None:
        trace(self._log, "store_call", op=name, **describe_params(params))

    def _get_object(self, sha: str, kind: type):
        try:
            obj = self._repo.object_store[sha.encode()]
        except KeyError:
            raise StoreError(f"Object not found: {sha}", status=404) from None
        if not isinstance(obj, kind):
            raise StoreError(f"Object {sha} is a {obj.type_name.decode()}, not a {kind.type_name.decode()}",
                             status=422)
        return obj

    def _write_commit(self, message: str, tree: bytes, parents: list[bytes]) -> _DCommit:
        c = _DCommit()
        c.tree = tree
        c.parents = parents
        c.author = c.committer = self._identity
        now = int(_time.time())
        c.author_time = c.commit_time = now
        c.author_timezone = c.commit_timezone = 0
        msg = message.encode()
        if not msg.endswith(b"\n"):
            msg += b"\n"
        c.message = msg
        c.encoding = b"UTF-8"
        self._repo.object_store.add_object(c)
        return c

    @staticmethod
    def _wrap_tree(obj: _DTree) -> Tree:
        entries = tuple(
            TreeEntry(e.path.decode(), e.mode, object_type_for_mode(e.mode), e.sha.decode())
            for e in obj.iteritems()
        )
        return Tree(obj.id.decode(), entries)

    @staticmethod
    def _wrap_commit(obj: _DCommit) -> Commit:
        return Commit(
            sha=obj.id.decode(),
            tree=obj.tree.decode(),
            parents=tuple(p.decode() for p in obj.parents),
            message=obj.message.decode(),
        )

    # -- references ---------------------------------------------------------

    def _read_ref(self, ref: str) -> Reference:
        try:
            sha = self._repo.refs[_full_ref(ref)]
        except KeyError:
            raise NotFoundError(f"Reference not found: {ref}") from None
        return Reference(ref, sha.decode())

    def _add_ref(self, ref: str, sha: str) -> Reference:
        self._get_object(sha, _DCommit)
        added = self._repo.refs.add_if_new(
            _full_ref(ref), sha.encode(),
            committer=self._identity, message=f"branch: Created at {sha[:7]}".encode(),
        )
        if not added:
            raise StoreError(f"Reference already exists: {ref}", status=422)
        return Reference(ref, sha)

    def _set_ref(self, ref: str, sha: str, old_sha: str | None) -> Reference:
        name = _full_ref(ref)
        if name not in self._repo.refs:
            raise StoreError(f"Reference not found: {ref}", status=422)
        commit = self._get_object(sha, _DCommit)
        current = self._repo.refs[name]
        expected = old_sha.encode() if old_sha is not None else None
        # Without an explicit expectation, only fast-forwards are accepted.
        if expected is None and current not in commit.parents and current != commit.id:
            raise StaleBranchError(f"Update is not a fast forward: {ref}", status=422)
        first_line = commit.message.decode().splitlines()[0] if commit.message else ""
        updated = self._repo.refs.set_if_equals(
            name, expected if expected is not None else current, sha.encode(),
            committer=self._identity, message=f"commit: {first_line}".encode(),
        )
        if not updated:
            raise StaleBranchError(f"Reference {ref} moved since it was read", status=422)
        return Reference(ref, sha)

    async def get_reference(self, ref: str) -> Reference:
        self._record("getReference", ref=ref)
        return await asyncio.to_thread(self._read_ref, ref)

    async def create_reference(self, ref: str, sha: str) -> Reference:
        self._record("createReference", ref=ref, sha=sha)
        return await asyncio.to_thread(self._add_ref, ref, sha)

    async def update_reference(self, ref: str, sha: str, *, old_sha: str | None = None) -> Reference:
        self._record("updateReference", ref=ref, sha=sha, old_sha=old_sha)
        return await asyncio.to_thread(self._set_ref, ref, sha, old_sha)

    # -- objects ------------------------------------------------------------

    def _new_commit(self, message: str, tree: str, parents: list[str]) -> Commit:
        self._get_object(tree, _DTree)
        for p in parents:
            self._get_object(p, _DCommit)
        c = self._write_commit(message, tree.encode(), [p.encode() for p in parents])
        return self._wrap_commit(c)

    def _new_tree(self, entries: list[TreeEntry]) -> Tree:
        tree = _DTree()
        seen: set[str] = set()
        for e in entries:
            if e.path in seen:
                raise StoreError(f"Duplicate tree entry: {e.path}", status=422)
            seen.add(e.path)
            tree.add(e.path.encode(), e.mode, e.sha.encode())
        self._repo.object_store.add_object(tree)
        return self._wrap_tree(tree)

    def _new_blob(self, content: bytes) -> str:
        blob = _DBlob.from_string(content)
        self._repo.object_store.add_object(blob)
        return blob.id.decode()

    async def get_commit(self, sha: str) -> Commit:
        self._record("getCommit", sha=sha)
        obj = await asyncio.to_thread(self._get_object, sha, _DCommit)
        return self._wrap_commit(obj)

    async def create_commit(self, message: str, tree: str, parents: list[str]) -> Commit:
        self._record("createCommit", message=message, tree=tree, parents=parents)
        return await asyncio.to_thread(self._new_commit, message, tree, list(parents))

    async def get_tree(self, sha: str) -> Tree:
        self._record("getTree", sha=sha)
        obj = await asyncio.to_thread(self._get_object, sha, _DTree)
        return self._wrap_tree(obj)

    async def create_tree(self, entries: Iterable[TreeEntry]) -> Tree:
        entries = list(entries)
        self._record("createTree", entries=entries)
        return await asyncio.to_thread(self._new_tree, entries)

    async def create_blob(self, content: bytes) -> str:
        self._record("createBlob", content=content)
        return await asyncio.to_thread(self._new_blob, content)

    # -- pull requests ------------------------------------------------------

    def _add_pull_ref(self, title: str, body: str, base: str, head: str) -> PullRequest:
        try:
            head_sha = self._repo.refs[_full_ref(branch_ref(head))]
        except KeyError:
            raise StoreError(f"Head branch not found: {head}", status=422) from None
        if _full_ref(branch_ref(base)) not in self._repo.refs:
            raise StoreError(f"Base branch not found: {base}", status=422)
        name = f"{PULL_REQUEST_PREFIX}{base}/{head}"
        added = self._repo.refs.add_if_new(
            name.encode(), head_sha,
            committer=self._identity, message=title.encode(),
        )
        if not added:
            raise DuplicateRequestError(f"A pull request already exists for {head} into {base}")
        return PullRequest(title=title, body=body, base=base, head=head, url=name)

    async def create_pull_request(self, title: str, body: str, base: str, head: str) -> PullRequest:
        self._record("createPullRequest", title=title, base=base, head=head)
        return await asyncio.to_thread(self._add_pull_ref, title, body, base, head)
