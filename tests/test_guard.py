import pytest

from errors import NotFound, OperationNotSupportedForKind, Unauthenticated
from guard import (
    RequestContext,
    create_document,
    delete_document,
    duplicate_document,
    edit_document,
    editable_content,
    is_authenticated,
    list_documents,
    upload_image,
    view_document,
)


def snapshot(store):
    return {name: store.read(name)[1] for name in store.list()}


def test_is_authenticated(ledger):
    assert is_authenticated("admin", ledger)
    assert not is_authenticated(None, ledger)
    assert not is_authenticated("", ledger)
    assert not is_authenticated("ghost", ledger)


def test_removed_user_loses_access(ledger, store):
    ctx = RequestContext("admin", ledger, store)
    ledger.unregister("admin")
    with pytest.raises(Unauthenticated):
        create_document(ctx, "a.md")


@pytest.mark.parametrize("operation", [
    lambda ctx: create_document(ctx, "new.md", b"x"),
    lambda ctx: edit_document(ctx, "about.md", "info.md", b"changed"),
    lambda ctx: edit_document(ctx, "missing.md", None, b"changed"),
    lambda ctx: delete_document(ctx, "about.md"),
    lambda ctx: duplicate_document(ctx, "about.md"),
    lambda ctx: upload_image(ctx, "cat.png", b"\x89PNG"),
    lambda ctx: editable_content(ctx, "about.md"),
    lambda ctx: list_documents(ctx),
    lambda ctx: view_document(ctx, "about.md"),
])
def test_anonymous_is_refused_and_store_unchanged(anonymous, operation):
    anonymous.store.create("about.md", b"# Hi")
    before = snapshot(anonymous.store)
    with pytest.raises(Unauthenticated):
        operation(anonymous)
    assert snapshot(anonymous.store) == before


def test_ungated_reads(anonymous):
    anonymous.store.create("about.md", b"# Hi")
    assert list_documents(anonymous, gated=False) == ["about.md"]
    assert "<h1>Hi</h1>" in view_document(anonymous, "about.md", gated=False).body


@pytest.mark.parametrize("operation", [
    lambda ctx: edit_document(ctx, "missing.md", None, b"x"),
    lambda ctx: delete_document(ctx, "missing.md"),
    lambda ctx: duplicate_document(ctx, "missing.md"),
    lambda ctx: view_document(ctx, "missing.md"),
])
def test_missing_target(signed_in, operation):
    with pytest.raises(NotFound):
        operation(signed_in)


def test_editable_content_rejects_images(signed_in):
    upload_image(signed_in, "cat.png", b"\x89PNG")
    with pytest.raises(OperationNotSupportedForKind):
        editable_content(signed_in, "cat.png")


def test_document_lifecycle(signed_in):
    assert create_document(signed_in, "about.md", b"# Hi") == "about.md"
    rendered = view_document(signed_in, "about.md")
    assert rendered.mimetype == "text/html"
    assert "<h1>Hi</h1>" in rendered.body

    assert duplicate_document(signed_in, "about.md") == "about_copy.md"
    assert signed_in.store.read("about_copy.md")[1] == b"# Hi"

    delete_document(signed_in, "about.md")
    with pytest.raises(NotFound):
        view_document(signed_in, "about.md")
