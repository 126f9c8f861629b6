"""Gateway onto the GitHub git data API, backed by PyGithub.

PyGithub is a blocking client, so every request runs in a worker thread
via :func:`asyncio.to_thread`.  ``GithubException`` never escapes this
module: it is translated into the treesync error taxonomy.
"""

from __future__ import annotations

import asyncio
import base64
import logging
import re
from collections.abc import Iterable

from github import Auth, Github, GithubException, InputGitTreeElement
from github.GithubException import UnknownObjectException

from .._trace import describe_params, get_logger, trace
from ..exceptions import DuplicateRequestError, NotFoundError, StaleBranchError, StoreError
from ..objects import Commit, PullRequest, Reference, Tree, TreeEntry

_ALREADY_EXISTS = re.compile(r"already exists", re.IGNORECASE)
_NOT_FAST_FORWARD = re.compile(r"fast.forward", re.IGNORECASE)


def _error_messages(exc: GithubException) -> list[str]:
    """Collect the human-readable messages of a GitHub error payload."""
    data = exc.data
    if not isinstance(data, dict):
        return [str(data)] if data else []
    messages = []
    if data.get("message"):
        messages.append(str(data["message"]))
    for err in data.get("errors") or []:
        if isinstance(err, dict) and err.get("message"):
            messages.append(str(err["message"]))
        elif isinstance(err, str):
            messages.append(err)
    return messages


def _matches(exc: GithubException, pattern: re.Pattern) -> bool:
    return any(pattern.search(m) for m in _error_messages(exc))


def _store_error(op: str, exc: GithubException, cls: type[StoreError] = StoreError) -> StoreError:
    detail = "; ".join(_error_messages(exc)) or "no details"
    return cls(f"{op} failed ({exc.status}): {detail}", status=exc.status, data=exc.data)


class GitHubGateway:
    """Content-addressed store on a GitHub repository."""

    def __init__(self, repository, *, logger: logging.Logger | None = None):
        self._repo = repository
        self._log = get_logger(logger)
        # PyGithub wants GitTree/GitCommit objects (not hashes) when creating
        # commits; keep the ones we have already seen.
        self._objects: dict[str, object] = {}
        self._refs: dict[str, object] = {}

    def __repr__(self) -> str:
        return f"GitHubGateway({self._repo.full_name!r})"

    @classmethod
    def connect(
        cls,
        user: str,
        repo: str,
        *,
        token: str | None = None,
        client: Github | None = None,
        base_url: str | None = None,
        logger: logging.Logger | None = None,
    ) -> GitHubGateway:
        """Bind to ``user/repo``, building a client from *token* if needed."""
        if client is None:
            kwargs = {}
            if token:
                kwargs["auth"] = Auth.Token(token)
            if base_url:
                kwargs["base_url"] = base_url
            client = Github(**kwargs)
        return cls(client.get_repo(f"{user}/{repo}", lazy=True), logger=logger)

    def _record(self, name: str, **params) -> None:
        trace(self._log, "store_call", op=name, **describe_params(params))

    async def _raw(self, sha: str, fetch):
        obj = self._objects.get(sha)
        if obj is None:
            obj = await asyncio.to_thread(fetch, sha)
            self._objects[sha] = obj
        return obj

    # -- references ---------------------------------------------------------

    async def get_reference(self, ref: str) -> Reference:
        self._record("getReference", ref=ref)
        try:
            gitref = await asyncio.to_thread(self._repo.get_git_ref, ref)
        except UnknownObjectException:
            raise NotFoundError(f"Reference not found: {ref}") from None
        except GithubException as exc:
            raise _store_error("getReference", exc) from exc
        self._refs[ref] = gitref
        return Reference(ref, gitref.object.sha)

    async def create_reference(self, ref: str, sha: str) -> Reference:
        self._record("createReference", ref=ref, sha=sha)
        try:
            gitref = await asyncio.to_thread(self._repo.create_git_ref, ref=f"refs/{ref}", sha=sha)
        except GithubException as exc:
            raise _store_error("createReference", exc) from exc
        self._refs[ref] = gitref
        return Reference(ref, gitref.object.sha)

    async def update_reference(self, ref: str, sha: str, *, old_sha: str | None = None) -> Reference:
        # GitHub has no compare-and-swap; a non-forced update already
        # refuses anything that is not a fast forward.
        self._record("updateReference", ref=ref, sha=sha, old_sha=old_sha)
        try:
            gitref = self._refs.get(ref)
            if gitref is None:
                gitref = await asyncio.to_thread(self._repo.get_git_ref, ref)
            await asyncio.to_thread(gitref.edit, sha, force=False)
        except GithubException as exc:
            if exc.status == 422 and _matches(exc, _NOT_FAST_FORWARD):
                raise _store_error("updateReference", exc, StaleBranchError) from exc
            raise _store_error("updateReference", exc) from exc
        self._refs[ref] = gitref
        return Reference(ref, sha)

    # -- objects ------------------------------------------------------------

    async def get_commit(self, sha: str) -> Commit:
        self._record("getCommit", sha=sha)
        try:
            c = await self._raw(sha, self._repo.get_git_commit)
        except GithubException as exc:
            raise _store_error("getCommit", exc) from exc
        return Commit(
            sha=c.sha,
            tree=c.tree.sha,
            parents=tuple(p.sha for p in c.parents),
            message=c.message,
        )

    async def create_commit(self, message: str, tree: str, parents: list[str]) -> Commit:
        self._record("createCommit", message=message, tree=tree, parents=parents)
        try:
            tree_obj = await self._raw(tree, self._repo.get_git_tree)
            parent_objs = [await self._raw(p, self._repo.get_git_commit) for p in parents]
            c = await asyncio.to_thread(self._repo.create_git_commit, message, tree_obj, parent_objs)
        except GithubException as exc:
            raise _store_error("createCommit", exc) from exc
        self._objects[c.sha] = c
        return Commit(sha=c.sha, tree=tree, parents=tuple(parents), message=message)

    async def get_tree(self, sha: str) -> Tree:
        self._record("getTree", sha=sha)
        try:
            t = await self._raw(sha, self._repo.get_git_tree)
        except GithubException as exc:
            raise _store_error("getTree", exc) from exc
        return self._wrap_tree(t)

    async def create_tree(self, entries: Iterable[TreeEntry]) -> Tree:
        entries = list(entries)
        self._record("createTree", entries=entries)
        elements = [
            InputGitTreeElement(e.path, f"{e.mode:06o}", e.type, sha=e.sha)
            for e in entries
        ]
        try:
            t = await asyncio.to_thread(self._repo.create_git_tree, elements)
        except GithubException as exc:
            raise _store_error("createTree", exc) from exc
        self._objects[t.sha] = t
        return self._wrap_tree(t)

    async def create_blob(self, content: bytes) -> str:
        self._record("createBlob", content=content)
        encoded = base64.b64encode(content).decode("ascii")
        try:
            blob = await asyncio.to_thread(self._repo.create_git_blob, encoded, "base64")
        except GithubException as exc:
            raise _store_error("createBlob", exc) from exc
        return blob.sha

    @staticmethod
    def _wrap_tree(t) -> Tree:
        entries = tuple(
            TreeEntry(el.path, int(el.mode, 8), el.type, el.sha) for el in t.tree
        )
        return Tree(t.sha, entries)

    # -- pull requests ------------------------------------------------------

    async def create_pull_request(self, title: str, body: str, base: str, head: str) -> PullRequest:
        self._record("createPullRequest", title=title, base=base, head=head)
        try:
            pr = await asyncio.to_thread(
                self._repo.create_pull, base=base, head=head, title=title, body=body,
            )
        except GithubException as exc:
            if exc.status == 422 and _matches(exc, _ALREADY_EXISTS):
                raise DuplicateRequestError("; ".join(_error_messages(exc))) from exc
            raise _store_error("createPullRequest", exc) from exc
        return PullRequest(
            title=title, body=body, base=base, head=head,
            url=pr.html_url, number=pr.number,
        )
