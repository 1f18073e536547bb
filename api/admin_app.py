from __future__ import annotations

import html
import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import Optional
from urllib.parse import quote_plus

from fastapi import FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from api.core import csrf
from api.core.config import get_settings
from api.core.log import configure_logging
from api.core.rate_limiter import rate_limit_ip
from api.core.security import token_role
from api.core.utils import safe_next
from api.db.create_tables import create_all
from api.domain.cards import CardValidationError
from api.domain.models import ROLE_ADMIN, ROLE_USER, VisitCard
from api.repositories.backend_client import (
    BackendClient,
    BackendError,
    LogoUploadError,
    describe_error,
)
from api.repositories.sql_repository import SQLRepository
from api.routers.card_edit import form_context, read_logo
from api.services.card_display import excerpt, logo_src, render_markdown
from api.services.card_form_service import CardForm, CardFormService
from api.services.stats_service import aggregate_stats


@asynccontextmanager
async def lifespan(app: FastAPI):
    create_all()
    yield


app = FastAPI(title="Visit Card Admin", lifespan=lifespan)
# tests swap in an httpx.MockTransport here
app.state.backend_transport = None
settings = get_settings()
repo = SQLRepository()
logger = logging.getLogger(__name__)

ADMIN_COOKIE_NAME = "admin_session"
ADMIN_COOKIE_SECURE = settings.app_env == "prod"
CARD_EXCERPT_LENGTH = 150

# the logo picker markup and script are shared with the public author form
_fragments = Jinja2Templates(directory=os.path.join(os.path.dirname(__file__), "..", "templates"))


# ---------------------- helpers ----------------------
def _client(request: Request, token: Optional[str] = None) -> BackendClient:
    current = get_settings()
    return BackendClient(
        current.backend_url,
        token,
        timeout=current.request_timeout,
        transport=getattr(request.app.state, "backend_transport", None),
    )


def _issue_admin_session(bearer_token: str, email: str) -> str:
    ttl = max(600, get_settings().session_ttl_seconds)
    expires_at = datetime.now(timezone.utc) + timedelta(seconds=ttl)
    return repo.create_session(bearer_token, ROLE_ADMIN, email, expires_at)


def _load_admin_session(token: Optional[str]):
    if not token:
        return None
    sess = repo.get_session(token)
    now = datetime.now(timezone.utc)
    if not sess or (sess.expires_at and sess.expires_at < now):
        repo.delete_session(token)
        return None
    if sess.role != ROLE_ADMIN:
        return None
    return sess


def require_admin(request: Request) -> str:
    """Bearer token of the signed-in admin. The backend still authorizes every call."""
    sess = _load_admin_session(request.cookies.get(ADMIN_COOKIE_NAME))
    if not sess:
        raise HTTPException(401, "Not signed in")
    return sess.bearer_token


def _to_login(next_path: str) -> RedirectResponse:
    return RedirectResponse(f"/login?next={quote_plus(next_path)}", status_code=303)


def _alert(message: str, role: str = "alert") -> str:
    if not message:
        return ""
    return f"<mark role='{role}' style='display:block'>{html.escape(message)}</mark>"


def _layout(
    title: str, body: str, csrf_token: str = "", status_code: int = 200, head: str = ""
) -> HTMLResponse:
    resp = HTMLResponse(
        f"""
        <!doctype html><html lang='en'><head>
        <meta charset='utf-8'><meta name='viewport' content='width=device-width,initial-scale=1'>
        <link rel="stylesheet" href="https://unpkg.com/@picocss/pico@2.0.6/css/pico.min.css">
        {head}
        <title>{html.escape(title)}</title>
        <style>table {{font-size:14px}} td,th {{white-space:nowrap}}
          .dropzone {{border:1px dashed var(--pico-muted-border-color); padding:12px; margin-bottom:12px}}
          .dropzone.over {{border-color:var(--pico-primary)}}
        </style>
        </head><body>
        <main class="container">
          <nav><ul><li><strong>Admin</strong></li></ul>
              <ul><li><a href="/">Dashboard</a></li><li><a href="/users">Users</a></li><li><a href="/cards">Cards</a></li><li><a href="/stats">Statistics</a></li><li><a href="/logout">Logout</a></li></ul>
          </nav>
          {body}
        </main>
        <script>
          document.addEventListener('submit', function (ev) {{
            var form = ev.target;
            if (form.dataset.submitting === '1') {{ ev.preventDefault(); return; }}
            form.dataset.submitting = '1';
            setTimeout(function () {{
              form.querySelectorAll('button').forEach(function (b) {{ b.disabled = true; }});
            }}, 0);
          }});
        </script>
        </body></html>
        """,
        status_code=status_code,
    )
    if csrf_token:
        csrf.set_csrf_cookie(resp, csrf_token)
    return resp


def _confirm_page(request: Request, subject: str, action: str, cancel_url: str, error: str = "") -> HTMLResponse:
    csrf_token = csrf.ensure_csrf_token(request)
    body = f"""
    <article>
      <h3>Delete {html.escape(subject)}?</h3>
      {_alert(error)}
      <p>This cannot be undone.</p>
      <form method='post' action='{html.escape(action)}'>
        {csrf.csrf_field(csrf_token)}
        <input type='hidden' name='confirm' value='yes'>
        <button class='contrast'>Delete</button>
        <a href='{html.escape(cancel_url)}' role='button' class='secondary'>Cancel</a>
      </form>
    </article>
    """
    return _layout("Admin | Confirm", body, csrf_token, status_code=400 if error else 200)


def _saved_page(message: str, next_url: str) -> HTMLResponse:
    delay = get_settings().redirect_delay_seconds
    body = f"""
    <article>
      {_alert(message, role="status")}
      <p>Redirecting... <a href='{html.escape(next_url)}'>Continue</a></p>
    </article>
    """
    head = f"<meta http-equiv='refresh' content='{delay:g};url={html.escape(next_url)}'>"
    return _layout("Admin | Saved", body, head=head)


def _backend_failure(request: Request, exc: BackendError, path: str, title: str, fallback: str):
    """401/403 means the stored token is no longer good enough: sign out."""
    if exc.status_code in (401, 403):
        logger.warning("Admin session rejected by backend on %s", path)
        repo.delete_session(request.cookies.get(ADMIN_COOKIE_NAME) or "")
        resp = _to_login(path)
        resp.delete_cookie(ADMIN_COOKIE_NAME, path="/")
        return resp
    body = f"<article><h3>{html.escape(title)}</h3>{_alert(describe_error(exc, fallback))}</article>"
    return _layout(f"Admin | {title}", body, status_code=502)


def _matches(query: str, *fields: str) -> bool:
    q = (query or "").strip().lower()
    if not q:
        return True
    return any(q in (f or "").lower() for f in fields)


# ---------------------- auth ----------------------
@app.get("/login", response_class=HTMLResponse)
def login_page(request: Request, next: str = "/", error: str = ""):
    messages = {
        "credentials": "Invalid credentials.",
        "forbidden": "This account is not an administrator.",
    }
    msg = messages.get(error, "")
    csrf_token = csrf.ensure_csrf_token(request)
    body = f"""
      <article>
        <h1>Admin | Login</h1>
        {_alert(msg)}
        <form method='post' action='/login'>
          {csrf.csrf_field(csrf_token)}
          <input type='hidden' name='next' value='{html.escape(next)}'>
          <label>Email</label><input name='email' type='email' required>
          <label>Password</label><input name='password' type='password' required>
          <button style='margin-top:12px'>Sign in</button>
        </form>
      </article>
    """
    return _layout("Admin | Login", body, csrf_token)


@app.post("/login")
def do_login(
    request: Request,
    email: str = Form(...),
    password: str = Form(...),
    next: str = Form("/"),
    csrf_token: str = Form(""),
):
    rate_limit_ip(request, "admin:login", limit=5, window_seconds=60)
    csrf.validate_csrf(request, csrf_token)
    with _client(request) as client:
        try:
            bearer = client.login(email.strip(), password)
        except BackendError as exc:
            logger.info("Admin login failed for %s: %s", email, exc.message)
            return RedirectResponse("/login?error=credentials", status_code=303)
    # display gate only, the backend enforces the role on every admin endpoint
    if token_role(bearer) != ROLE_ADMIN:
        return RedirectResponse("/login?error=forbidden", status_code=303)
    tok = _issue_admin_session(bearer, email.strip())
    resp = RedirectResponse(safe_next(next, "/"), status_code=303)
    resp.set_cookie(
        ADMIN_COOKIE_NAME,
        value=tok,
        httponly=True,
        samesite="strict",
        secure=ADMIN_COOKIE_SECURE,
        max_age=max(600, get_settings().session_ttl_seconds),
        path="/",
    )
    return resp


@app.get("/logout")
def logout(request: Request):
    tok = request.cookies.get(ADMIN_COOKIE_NAME)
    if tok:
        repo.delete_session(tok)
    resp = RedirectResponse("/login", status_code=303)
    resp.delete_cookie(ADMIN_COOKIE_NAME, path="/")
    return resp


# ---------------------- dashboard ----------------------
@app.get("/", response_class=HTMLResponse)
def dashboard(request: Request):
    try:
        token = require_admin(request)
    except HTTPException:
        return _to_login("/")
    with _client(request, token) as client:
        try:
            users = client.list_users()
            cards = client.admin_cards()
        except BackendError as exc:
            return _backend_failure(request, exc, "/", "Dashboard", "Failed to load dashboard data")
    stats = aggregate_stats(users, cards)
    body = f"""
      <article>
        <h3>Overview</h3>
        <div class='grid'>
          <div><small>Users</small><h2 id='total-users'>{stats.total_users}</h2></div>
          <div><small>Visit cards</small><h2 id='total-cards'>{stats.total_cards}</h2></div>
          <div><small>Views</small><h2 id='total-views'>{stats.total_views}</h2></div>
          <div><small>Bot interactions</small><h2 id='total-bot'>{stats.total_bot_interactions}</h2></div>
        </div>
        <p><a href='/users' role='button'>Users</a> <a href='/cards' role='button' class='secondary'>Cards</a> <a href='/stats' role='button' class='secondary'>Statistics</a></p>
      </article>
    """
    return _layout("Admin | Dashboard", body)


# ---------------------- users ----------------------
def _user_row(u) -> str:
    return (
        f"<tr>"
        f"<td>{u.id}</td>"
        f"<td>{html.escape(u.email)}</td>"
        f"<td>{html.escape(u.name)}</td>"
        f"<td>{html.escape(u.company_name)}</td>"
        f"<td>{html.escape(u.role)}</td>"
        f"<td><a href='/users/{u.id}/edit' class='secondary' style='margin:0 4px'>Edit</a>"
        f"<a href='/users/{u.id}/delete' class='secondary' style='margin:0 4px'>Delete</a></td>"
        f"</tr>"
    )


@app.get("/users", response_class=HTMLResponse)
def list_users(request: Request, q: str = "", ok: str = ""):
    try:
        token = require_admin(request)
    except HTTPException:
        return _to_login("/users")
    with _client(request, token) as client:
        try:
            users = client.list_users()
        except BackendError as exc:
            return _backend_failure(request, exc, "/users", "Users", "Failed to load users")
    filtered = [u for u in users if _matches(q, u.email, u.name, u.company_name)]
    rows = "\n".join(_user_row(u) for u in filtered)
    notices = {"updated": "User updated.", "deleted": "User deleted."}
    body = f"""
    <article>
      <h3>Users</h3>
      {_alert(notices.get(ok, ""), role="status")}
      <form class='grid' method='get' action='/users'>
        <input name='q' placeholder='email, name or company' value='{html.escape(q)}'>
        <button>Filter</button>
      </form>
      <table role='grid'>
        <thead><tr><th>ID</th><th>Email</th><th>Name</th><th>Company</th><th>Role</th><th>Actions</th></tr></thead>
        <tbody>{rows or '<tr><td colspan="6">No users</td></tr>'}</tbody>
      </table>
    </article>
    """
    return _layout("Admin | Users", body)


def _user_form(user_id: int, values: dict, csrf_token: str, error: str = "") -> str:
    role = values.get("role") or ROLE_USER
    options = "".join(
        f"<option value='{r}' {'selected' if r == role else ''}>{r}</option>" for r in (ROLE_USER, ROLE_ADMIN)
    )
    return f"""
    <article>
      <h3>Edit user #{user_id}</h3>
      {_alert(error)}
      <form method='post' action='/users/{user_id}/edit'>
        {csrf.csrf_field(csrf_token)}
        <label>Name <input name='name' value='{html.escape(values.get("name", ""))}'></label>
        <label>Email <input name='email' type='email' value='{html.escape(values.get("email", ""))}' required></label>
        <label>Company name <input name='company_name' value='{html.escape(values.get("company_name", ""))}'></label>
        <label>Role <select name='role'>{options}</select></label>
        <button>Save</button>
        <a href='/users' role='button' class='secondary'>Cancel</a>
      </form>
    </article>
    """


@app.get("/users/{user_id:int}/edit", response_class=HTMLResponse)
def edit_user_page(user_id: int, request: Request):
    path = f"/users/{user_id}/edit"
    try:
        token = require_admin(request)
    except HTTPException:
        return _to_login(path)
    with _client(request, token) as client:
        try:
            user = client.get_user(user_id)
        except BackendError as exc:
            return _backend_failure(request, exc, path, "Edit user", "Failed to load user")
    csrf_token = csrf.ensure_csrf_token(request)
    values = {"name": user.name, "email": user.email, "company_name": user.company_name, "role": user.role}
    return _layout("Admin | Edit user", _user_form(user_id, values, csrf_token), csrf_token)


@app.post("/users/{user_id:int}/edit")
def edit_user(
    user_id: int,
    request: Request,
    name: str = Form(""),
    email: str = Form(""),
    company_name: str = Form(""),
    role: str = Form(ROLE_USER),
    csrf_token: str = Form(""),
):
    csrf.validate_csrf(request, csrf_token)
    path = f"/users/{user_id}/edit"
    try:
        token = require_admin(request)
    except HTTPException:
        return _to_login(path)
    values = {
        "name": name.strip(),
        "email": email.strip(),
        "company_name": company_name.strip(),
        "role": role if role in (ROLE_USER, ROLE_ADMIN) else ROLE_USER,
    }
    with _client(request, token) as client:
        try:
            client.update_user(user_id, values)
        except BackendError as exc:
            if exc.status_code in (401, 403):
                return _backend_failure(request, exc, path, "Edit user", "Failed to update user")
            message = describe_error(exc, "Failed to update user")
            return _layout("Admin | Edit user", _user_form(user_id, values, csrf_token, message), csrf_token, 400)
    logger.info("Admin updated user %s", user_id)
    return RedirectResponse("/users?ok=updated", status_code=303)


@app.get("/users/{user_id:int}/delete", response_class=HTMLResponse)
def confirm_delete_user(user_id: int, request: Request):
    try:
        require_admin(request)
    except HTTPException:
        return _to_login(f"/users/{user_id}/delete")
    return _confirm_page(request, f"user #{user_id}", f"/users/{user_id}/delete", "/users")


@app.post("/users/{user_id:int}/delete")
def delete_user(user_id: int, request: Request, confirm: str = Form(""), csrf_token: str = Form("")):
    csrf.validate_csrf(request, csrf_token)
    path = f"/users/{user_id}/delete"
    if confirm != "yes":
        return RedirectResponse(path, status_code=303)
    try:
        token = require_admin(request)
    except HTTPException:
        return _to_login(path)
    with _client(request, token) as client:
        try:
            client.delete_user(user_id)
        except BackendError as exc:
            if exc.status_code in (401, 403):
                return _backend_failure(request, exc, path, "Users", "Failed to delete user")
            return _confirm_page(
                request, f"user #{user_id}", path, "/users", describe_error(exc, "Failed to delete user")
            )
    logger.info("Admin deleted user %s", user_id)
    return RedirectResponse("/users?ok=deleted", status_code=303)


# ---------------------- cards ----------------------
def _owner_label(card) -> str:
    if not card.user:
        return ""
    return card.user.company_name or card.user.display_name


def _card_row(c) -> str:
    logo = f"<img src='{html.escape(logo_src(c.logo_url))}' alt='' width='32'>" if c.logo_url else ""
    return (
        f"<tr>"
        f"<td>{c.id}</td>"
        f"<td>{logo} {html.escape(c.title)}</td>"
        f"<td>{html.escape(excerpt(c.description, CARD_EXCERPT_LENGTH))}</td>"
        f"<td>{html.escape(_owner_label(c))}</td>"
        f"<td>{html.escape(c.domain)}</td>"
        f"<td>{c.view_count}</td>"
        f"<td>{c.bot_view_count}</td>"
        f"<td><a href='/cards/{c.id}/edit' class='secondary' style='margin:0 4px'>Edit</a>"
        f"<a href='/cards/{c.id}/delete' class='secondary' style='margin:0 4px'>Delete</a></td>"
        f"</tr>"
    )


@app.get("/cards", response_class=HTMLResponse)
def list_cards(request: Request, q: str = "", ok: str = ""):
    try:
        token = require_admin(request)
    except HTTPException:
        return _to_login("/cards")
    with _client(request, token) as client:
        try:
            cards = client.admin_cards()
        except BackendError as exc:
            return _backend_failure(request, exc, "/cards", "Cards", "Failed to load visit cards")
    filtered = []
    for c in cards:
        owner = c.user
        if _matches(q, c.title, c.description, owner.name if owner else "", owner.company_name if owner else ""):
            filtered.append(c)
    rows = "\n".join(_card_row(c) for c in filtered)
    notices = {"updated": "Visit card updated.", "deleted": "Visit card deleted."}
    body = f"""
    <article>
      <h3>Visit cards</h3>
      {_alert(notices.get(ok, ""), role="status")}
      <form class='grid' method='get' action='/cards'>
        <input name='q' placeholder='title, description, owner or company' value='{html.escape(q)}'>
        <button>Filter</button>
      </form>
      <table role='grid'>
        <thead><tr><th>ID</th><th>Title</th><th>Description</th><th>Owner</th><th>Domain</th><th>Views</th><th>Bot views</th><th>Actions</th></tr></thead>
        <tbody>{rows or '<tr><td colspan="8">No visit cards</td></tr>'}</tbody>
      </table>
    </article>
    """
    return _layout("Admin | Cards", body)


def _card_form(
    card_id: int,
    form: CardForm,
    csrf_token: str,
    error: str = "",
    card: Optional[VisitCard] = None,
    preview_html: str = "",
) -> str:
    ctx = form_context(
        form,
        card_id=card_id,
        card=card,
        action=f"/cards/{card_id}/edit",
        cancel_url="/cards",
        logo_delete_url=f"/cards/{card_id}/logo/delete",
    )
    picker = _fragments.get_template("_logo_picker.html").render(ctx)
    preview = f"<section class='preview'><h4>Preview</h4>{preview_html}</section>" if preview_html else ""
    current_logo = ""
    if card and card.logo_url:
        current_logo = f"""
      <form method='post' action='{ctx["logo_delete_url"]}'>
        {csrf.csrf_field(csrf_token)}
        <img src='{html.escape(logo_src(card.logo_url))}' alt='Current logo' width='64'>
        <button class='contrast'>Remove logo</button>
      </form>
        """
    return f"""
    <article>
      <h3>Edit visit card #{card_id}</h3>
      {_alert(error)}
      <form method='post' action='{ctx["action"]}' enctype='multipart/form-data'>
        {csrf.csrf_field(csrf_token)}
        <label>Title <input name='title' value='{html.escape(form.title)}' required></label>
        <label>Description (markdown) <textarea name='description' rows='6'>{html.escape(form.description)}</textarea></label>
        {preview}
        <label>Domain <input name='domain' value='{html.escape(form.domain)}'></label>
        <label>Telegram bot token <input name='telegram_bot_token' value='{html.escape(form.telegram_bot_token)}'
               pattern='{html.escape(ctx["bot_token_pattern"])}'></label>
        {picker}
        <button name='action' value='save'>Save</button>
        <button name='action' value='preview' class='secondary'>Preview</button>
        <a href='{ctx["cancel_url"]}' role='button' class='secondary'>Cancel</a>
      </form>
      {current_logo}
    </article>
    """


def _load_card(client: BackendClient, card_id: int) -> Optional[VisitCard]:
    try:
        return client.card_detail(card_id)
    except BackendError:
        return None


@app.get("/cards/{card_id:int}/edit", response_class=HTMLResponse)
def edit_card_page(card_id: int, request: Request):
    path = f"/cards/{card_id}/edit"
    try:
        token = require_admin(request)
    except HTTPException:
        return _to_login(path)
    with _client(request, token) as client:
        try:
            card = client.card_detail(card_id)
        except BackendError as exc:
            return _backend_failure(request, exc, path, "Edit visit card", "Failed to load visit card")
    csrf_token = csrf.ensure_csrf_token(request)
    body = _card_form(card_id, CardForm.from_card(card), csrf_token, card=card)
    return _layout("Admin | Edit card", body, csrf_token)


@app.post("/cards/{card_id:int}/edit")
def edit_card(
    card_id: int,
    request: Request,
    title: str = Form(""),
    description: str = Form(""),
    domain: str = Form(""),
    telegram_bot_token: str = Form(""),
    action: str = Form("save"),
    logo: Optional[UploadFile] = File(None),
    csrf_token: str = Form(""),
):
    csrf.validate_csrf(request, csrf_token)
    path = f"/cards/{card_id}/edit"
    try:
        token = require_admin(request)
    except HTTPException:
        return _to_login(path)
    form = CardForm(title, description, domain, telegram_bot_token)
    if action == "preview":
        body = _card_form(card_id, form, csrf_token, preview_html=str(render_markdown(form.description)))
        return _layout("Admin | Edit card", body, csrf_token)
    logo_file = read_logo(logo)
    with _client(request, token) as client:
        try:
            CardFormService(client, get_settings().max_logo_bytes).submit(form, logo_file, card_id)
        except CardValidationError as exc:
            body = _card_form(card_id, form, csrf_token, exc.message)
            return _layout("Admin | Edit card", body, csrf_token, 400)
        except LogoUploadError as exc:
            body = _card_form(card_id, form, csrf_token, exc.message, _load_card(client, card_id))
            return _layout("Admin | Edit card", body, csrf_token, 400)
        except BackendError as exc:
            if exc.status_code in (401, 403):
                return _backend_failure(request, exc, path, "Edit visit card", "Failed to save visit card")
            message = describe_error(exc, "Failed to save visit card")
            body = _card_form(card_id, form, csrf_token, message, _load_card(client, card_id))
            return _layout("Admin | Edit card", body, csrf_token, 400)
    logger.info("Admin updated card %s", card_id)
    return _saved_page("Visit card updated successfully!", "/cards?ok=updated")


@app.post("/cards/{card_id:int}/logo/delete")
def delete_card_logo(card_id: int, request: Request, csrf_token: str = Form("")):
    csrf.validate_csrf(request, csrf_token)
    path = f"/cards/{card_id}/edit"
    try:
        token = require_admin(request)
    except HTTPException:
        return _to_login(path)
    with _client(request, token) as client:
        try:
            CardFormService(client).remove_logo(card_id)
        except BackendError as exc:
            if exc.status_code in (401, 403):
                return _backend_failure(request, exc, path, "Edit visit card", "Failed to delete logo")
            card = _load_card(client, card_id)
            form = CardForm.from_card(card) if card else CardForm()
            body = _card_form(card_id, form, csrf_token, describe_error(exc, "Failed to delete logo"), card)
            return _layout("Admin | Edit card", body, csrf_token, 400)
    logger.info("Admin removed the logo of card %s", card_id)
    return RedirectResponse(path, status_code=303)


@app.get("/cards/{card_id:int}/delete", response_class=HTMLResponse)
def confirm_delete_card(card_id: int, request: Request):
    try:
        require_admin(request)
    except HTTPException:
        return _to_login(f"/cards/{card_id}/delete")
    return _confirm_page(request, f"visit card #{card_id}", f"/cards/{card_id}/delete", "/cards")


@app.post("/cards/{card_id:int}/delete")
def delete_card(card_id: int, request: Request, confirm: str = Form(""), csrf_token: str = Form("")):
    csrf.validate_csrf(request, csrf_token)
    path = f"/cards/{card_id}/delete"
    if confirm != "yes":
        return RedirectResponse(path, status_code=303)
    try:
        token = require_admin(request)
    except HTTPException:
        return _to_login(path)
    with _client(request, token) as client:
        try:
            client.delete_card(card_id)
        except BackendError as exc:
            if exc.status_code in (401, 403):
                return _backend_failure(request, exc, path, "Cards", "Failed to delete visit card")
            return _confirm_page(
                request, f"visit card #{card_id}", path, "/cards", describe_error(exc, "Failed to delete visit card")
            )
    logger.info("Admin deleted card %s", card_id)
    return RedirectResponse("/cards?ok=deleted", status_code=303)


# ---------------------- statistics ----------------------
@app.get("/stats", response_class=HTMLResponse)
def statistics(request: Request):
    try:
        token = require_admin(request)
    except HTTPException:
        return _to_login("/stats")
    with _client(request, token) as client:
        try:
            rows = client.admin_card_stats()
        except BackendError as exc:
            return _backend_failure(request, exc, "/stats", "Statistics", "Failed to load statistics")
    stats = aggregate_stats([], rows)
    table = "".join(
        f"<tr><td>{s.id}</td><td>{html.escape(s.title)}</td>"
        f"<td>{html.escape(s.user.display_name if s.user else '')}</td>"
        f"<td>{s.view_count}</td><td>{s.bot_view_count}</td></tr>"
        for s in sorted(rows, key=lambda s: s.view_count, reverse=True)
    )
    body = f"""
    <article>
      <h3>Statistics</h3>
      <ul>
        <li>Total views: <b id='stat-views'>{stats.total_views}</b></li>
        <li>Total bot interactions: <b id='stat-bot'>{stats.total_bot_interactions}</b></li>
        <li>Average views per card: <b id='stat-average'>{stats.average_views}</b></li>
      </ul>
      <table role='grid'>
        <thead><tr><th>ID</th><th>Title</th><th>Owner</th><th>Views</th><th>Bot views</th></tr></thead>
        <tbody>{table or '<tr><td colspan="5">No data</td></tr>'}</tbody>
      </table>
    </article>
    """
    return _layout("Admin | Statistics", body)


def create_admin_app() -> FastAPI:
    """Factory for uvicorn/gunicorn."""
    configure_logging(get_settings().log_level)
    return app
