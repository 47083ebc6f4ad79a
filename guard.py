"""
Access guard around the document store.

Every call takes an explicit :class:`RequestContext` instead of reaching
for a session global. Authentication is checked before the store is
touched, then the target document's existence, then the operation runs.
"""

from dataclasses import dataclass

from content import Rendered, render_for_view, require_editable
from errors import NotFound, Unauthenticated
from ledger import Ledger
from store import DocumentStore


@dataclass(frozen=True)
class RequestContext:
    identity: str | None
    ledger: Ledger
    store: DocumentStore


def is_authenticated(identity: str | None, ledger: Ledger) -> bool:
    return bool(identity) and ledger.exists(identity)


def require_signin(ctx: RequestContext) -> None:
    if not is_authenticated(ctx.identity, ctx.ledger):
        raise Unauthenticated()


def require_document(ctx: RequestContext, name: str) -> None:
    if not ctx.store.exists(name):
        raise NotFound(name=name)


def list_documents(ctx: RequestContext, gated: bool = True) -> list[str]:
    if gated:
        require_signin(ctx)
    return ctx.store.list()


def view_document(ctx: RequestContext, name: str, gated: bool = True) -> Rendered:
    if gated:
        require_signin(ctx)
    kind, raw = ctx.store.read(name)
    return render_for_view(kind, raw, name)


def editable_content(ctx: RequestContext, name: str) -> str:
    require_signin(ctx)
    kind, raw = ctx.store.read(name)
    require_editable(name, kind, "edited")
    return raw.decode("utf-8", errors="replace")


def create_document(ctx: RequestContext, name: str, content: bytes = b"") -> str:
    require_signin(ctx)
    return ctx.store.create(name, content)


def edit_document(ctx: RequestContext, name: str, new_name: str | None = None,
                  new_content: bytes | None = None) -> str:
    require_signin(ctx)
    require_document(ctx, name)
    return ctx.store.edit(name, new_name, new_content)


def delete_document(ctx: RequestContext, name: str) -> None:
    require_signin(ctx)
    require_document(ctx, name)
    ctx.store.delete(name)


def duplicate_document(ctx: RequestContext, name: str) -> str:
    require_signin(ctx)
    require_document(ctx, name)
    return ctx.store.duplicate(name)


def upload_image(ctx: RequestContext, name: str, content: bytes) -> str:
    require_signin(ctx)
    return ctx.store.upload(name, content)
