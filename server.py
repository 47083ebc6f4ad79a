import functools
import logging
import sys
import threading
from pathlib import Path

from flask import (
    Blueprint, Flask, Response, current_app, flash,
    redirect, render_template_string, request, session, url_for,
)
from werkzeug.utils import secure_filename

from config import load_config
from content import Kind, classify, is_editable
from errors import (
    DocumentError, MissingUpload, NotFound, OperationNotSupportedForKind, Unauthenticated,
)
from guard import (
    RequestContext, create_document, delete_document, duplicate_document,
    edit_document, editable_content, is_authenticated, list_documents,
    require_signin, upload_image, view_document,
)
from ledger import Ledger
from naming import extension_of
from store import DocumentStore

logger = logging.getLogger(__name__)

bp = Blueprint("cms", __name__)

_SESSION_USER = "username"


def setup_logging(level: str = "INFO") -> None:
    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
        root.addHandler(handler)
    root.setLevel(level.upper())


def create_app(overrides: dict | None = None, config_path: Path | str | None = None) -> Flask:
    cfg = load_config(config_path, overrides)
    setup_logging(cfg["log_level"])

    app = Flask(__name__)
    app.config["SECRET_KEY"] = cfg["secret_key"]
    app.config["MAX_CONTENT_LENGTH"] = cfg["max_upload_bytes"]
    app.config["CMS"] = cfg
    app.extensions["cms"] = {
        "store": DocumentStore(cfg["data_root"]),
        "ledger": Ledger(cfg["ledger_path"], rounds=cfg["bcrypt_rounds"]),
        "lock": threading.Lock(),
    }
    app.register_blueprint(bp)
    logger.info("serving documents from %s", cfg["data_root"])
    return app


def _ctx() -> RequestContext:
    ext = current_app.extensions["cms"]
    return RequestContext(session.get(_SESSION_USER), ext["ledger"], ext["store"])


def _gated() -> bool:
    return bool(current_app.config["CMS"]["require_signin_to_view"])


def serialized(view):
    # store and ledger are plain files with no locking of their own
    @functools.wraps(view)
    def wrapper(*args, **kwargs):
        with current_app.extensions["cms"]["lock"]:
            return view(*args, **kwargs)
    return wrapper


def _render(body: str, status: int = 200, **context):
    ctx = _ctx()
    page = render_template_string(
        LAYOUT.replace("__BODY__", body),
        signed_in=is_authenticated(ctx.identity, ctx.ledger),
        current_user=ctx.identity,
        **context,
    )
    return page, status


def _bounce(err: DocumentError, endpoint: str = "cms.index"):
    flash(err.message)
    return redirect(url_for(endpoint))


@bp.route("/")
@serialized
def index():
    ctx = _ctx()
    try:
        docs = list_documents(ctx, gated=_gated())
    except Unauthenticated as e:
        return _bounce(e, "cms.signin")
    editable = {name for name in docs if is_editable(classify(name))}
    return _render(INDEX_BODY, docs=docs, editable=editable)


@bp.route("/favicon.ico")
def favicon():
    return "", 204


@bp.route("/<name>")
@serialized
def view(name):
    try:
        rendered = view_document(_ctx(), name, gated=_gated())
    except Unauthenticated as e:
        return _bounce(e, "cms.signin")
    except DocumentError as e:
        return _bounce(e)
    if classify(name) is Kind.MARKDOWN:
        return _render(DOCUMENT_BODY, name=name, html=rendered.body)
    return Response(rendered.body, mimetype=rendered.mimetype)


@bp.route("/<name>/edit", methods=["GET", "POST"])
@serialized
def edit(name):
    ctx = _ctx()
    if request.method == "GET":
        try:
            content = editable_content(ctx, name)
        except DocumentError as e:
            return _bounce(e)
        return _render(EDIT_BODY, name=name, new_name=name, content=content)

    new_name = request.form.get("new_name")
    updated = request.form.get("updated_content")
    if updated is not None:
        # browsers submit textarea line breaks as CRLF
        updated = updated.replace("\r\n", "\n")
    try:
        summary = edit_document(
            ctx, name, new_name,
            updated.encode("utf-8") if updated is not None else None,
        )
    except (Unauthenticated, NotFound, OperationNotSupportedForKind) as e:
        return _bounce(e)
    except DocumentError as e:
        flash(e.message)
        return _render(EDIT_BODY, e.status, name=name, new_name=new_name, content=updated or "")
    flash(summary)
    return redirect(url_for("cms.index"))


@bp.route("/<name>/delete", methods=["POST"])
@serialized
def delete(name):
    try:
        delete_document(_ctx(), name)
    except DocumentError as e:
        return _bounce(e)
    flash(f"{name} has been deleted.")
    return redirect(url_for("cms.index"))


@bp.route("/<name>/duplicate", methods=["POST"])
@serialized
def duplicate(name):
    try:
        copy_name = duplicate_document(_ctx(), name)
    except DocumentError as e:
        return _bounce(e)
    flash(f"{name} has been duplicated as {copy_name}.")
    return redirect(url_for("cms.index"))


@bp.route("/new_doc/", methods=["GET", "POST"])
@serialized
def new_doc():
    ctx = _ctx()
    if request.method == "GET":
        try:
            require_signin(ctx)
        except Unauthenticated as e:
            return _bounce(e)
        return _render(NEW_DOC_BODY, doc_name="")

    doc_name = request.form.get("doc_name", "")
    try:
        created = create_document(ctx, doc_name)
    except Unauthenticated as e:
        return _bounce(e)
    except DocumentError as e:
        flash(e.message)
        return _render(NEW_DOC_BODY, e.status, doc_name=doc_name)
    flash(f"{created} has been created.")
    return redirect(url_for("cms.index"))


@bp.route("/image/upload", methods=["GET", "POST"])
@serialized
def image_upload():
    ctx = _ctx()
    try:
        require_signin(ctx)
    except Unauthenticated as e:
        return _bounce(e)
    if request.method == "GET":
        return _render(UPLOAD_BODY, image_name="")

    image_name = request.form.get("image_name", "").strip()
    f = request.files.get("file")
    try:
        if f is None or not f.filename:
            raise MissingUpload()
        original = secure_filename(f.filename)
        name = image_name or original
        if image_name and not extension_of(image_name):
            name = image_name + extension_of(original)
        uploaded = upload_image(ctx, name, f.read())
    except Unauthenticated as e:
        return _bounce(e)
    except DocumentError as e:
        flash(e.message)
        return _render(UPLOAD_BODY, e.status, image_name=image_name)
    flash(f"{uploaded} has been uploaded.")
    return redirect(url_for("cms.index"))


@bp.route("/users/signin", methods=["GET", "POST"])
@serialized
def signin():
    if request.method == "GET":
        return _render(SIGNIN_BODY, username="")
    username = request.form.get("username", "").strip()
    ledger = current_app.extensions["cms"]["ledger"]
    try:
        session[_SESSION_USER] = ledger.authenticate(username, request.form.get("password", ""))
    except DocumentError as e:
        flash(e.message)
        return _render(SIGNIN_BODY, e.status, username=username)
    flash("Welcome!")
    return redirect(url_for("cms.index"))


@bp.route("/users/signout")
def signout():
    session.pop(_SESSION_USER, None)
    flash("You have been signed out.")
    return redirect(url_for("cms.index"))


@bp.route("/users/signup", methods=["GET", "POST"])
@serialized
def signup():
    if request.method == "GET":
        return _render(SIGNUP_BODY, username="")
    username = request.form.get("username", "").strip()
    ledger = current_app.extensions["cms"]["ledger"]
    try:
        ledger.register(username, request.form.get("password", ""))
    except DocumentError as e:
        flash(e.message)
        return _render(SIGNUP_BODY, e.status, username=username)
    flash(f"{username} has been registered. Please sign in.")
    return redirect(url_for("cms.signin"))


LAYOUT = r"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width, initial-scale=1">
<title>CMS</title>
<style>
*, *::before, *::after { box-sizing: border-box; }
body { font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", sans-serif; max-width: 48rem; margin: 2rem auto; padding: 0 1rem; color: #222; }
header { display: flex; justify-content: space-between; align-items: baseline; border-bottom: 1px solid #ddd; margin-bottom: 1rem; }
.flash { background: #fff6d6; border: 1px solid #e8d48a; padding: .5rem .75rem; margin: .5rem 0; border-radius: 4px; }
ul.docs { list-style: none; padding: 0; }
ul.docs li { display: flex; gap: .5rem; align-items: center; padding: .25rem 0; }
ul.docs li a.doc { flex: 1; }
form.inline { display: inline; }
textarea { width: 100%; min-height: 20rem; font-family: monospace; }
pre { background: #f6f8fa; padding: .75rem; overflow-x: auto; }
</style>
</head>
<body>
<header>
  <h1><a href="{{ url_for('cms.index') }}">CMS</a></h1>
  <nav>
  {% if signed_in %}
    Signed in as {{ current_user }} &middot; <a href="{{ url_for('cms.signout') }}">Sign out</a>
  {% else %}
    <a href="{{ url_for('cms.signin') }}">Sign in</a> &middot; <a href="{{ url_for('cms.signup') }}">Sign up</a>
  {% endif %}
  </nav>
</header>
{% for message in get_flashed_messages() %}
<p class="flash">{{ message }}</p>
{% endfor %}
__BODY__
</body>
</html>
"""

INDEX_BODY = r"""
<ul class="docs">
{% for doc in docs %}
  <li>
    <a class="doc" href="{{ url_for('cms.view', name=doc) }}">{{ doc }}</a>
    {% if signed_in %}
      {% if doc in editable %}
      <a href="{{ url_for('cms.edit', name=doc) }}">edit</a>
      <form class="inline" method="post" action="{{ url_for('cms.duplicate', name=doc) }}"><button type="submit">duplicate</button></form>
      {% endif %}
      <form class="inline" method="post" action="{{ url_for('cms.delete', name=doc) }}"><button type="submit">delete</button></form>
    {% endif %}
  </li>
{% else %}
  <li>No documents yet.</li>
{% endfor %}
</ul>
{% if signed_in %}
<p><a href="{{ url_for('cms.new_doc') }}">New document</a> &middot; <a href="{{ url_for('cms.image_upload') }}">Upload image</a></p>
{% endif %}
"""

DOCUMENT_BODY = r"""
<article>
{{ html|safe }}
</article>
"""

EDIT_BODY = r"""
<h2>Edit {{ name }}</h2>
<form method="post" action="{{ url_for('cms.edit', name=name) }}">
  <p><label>Name <input name="new_name" value="{{ new_name or '' }}"></label></p>
  <textarea name="updated_content">
{{ content }}</textarea>
  <p><button type="submit">Save</button></p>
</form>
"""

NEW_DOC_BODY = r"""
<h2>New document</h2>
<form method="post" action="{{ url_for('cms.new_doc') }}">
  <p><label>Name (.txt or .md) <input name="doc_name" value="{{ doc_name }}"></label></p>
  <p><button type="submit">Create</button></p>
</form>
"""

UPLOAD_BODY = r"""
<h2>Upload image</h2>
<form method="post" action="{{ url_for('cms.image_upload') }}" enctype="multipart/form-data">
  <p><input type="file" name="file"></p>
  <p><label>Save as <input name="image_name" value="{{ image_name }}"></label></p>
  <p><button type="submit">Upload</button></p>
</form>
"""

SIGNIN_BODY = r"""
<h2>Sign in</h2>
<form method="post" action="{{ url_for('cms.signin') }}">
  <p><label>Username <input name="username" value="{{ username }}"></label></p>
  <p><label>Password <input name="password" type="password"></label></p>
  <p><button type="submit">Sign in</button></p>
</form>
"""

SIGNUP_BODY = r"""
<h2>Sign up</h2>
<form method="post" action="{{ url_for('cms.signup') }}">
  <p><label>Username <input name="username" value="{{ username }}"></label></p>
  <p><label>Password <input name="password" type="password"></label></p>
  <p><button type="submit">Create account</button></p>
</form>
"""


if __name__ == "__main__":
    import socket
    app = create_app()
    cfg = app.config["CMS"]
    hostname = socket.gethostname()
    local_ip = socket.gethostbyname(hostname)
    print(f"Serving documents: {cfg['data_root']}")
    print(f"Open http://localhost:{cfg['port']}    (this machine)")
    print(f"     http://{local_ip}:{cfg['port']}  (other devices on network)")
    app.run(host=cfg["host"], port=cfg["port"])
