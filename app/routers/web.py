# app/routers/web.py
"""
Web UI Router - login, signup, members and admin pages.

Pages are small inline HTML documents. Every user-supplied value is
escaped before it is written into a page. Access rules come from the
require_member / require_admin dependencies; this module never decides
on its own who may see what.
"""
from __future__ import annotations

import html
import logging
import random
from typing import List, Optional, Sequence, Tuple
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Form, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse

from app.config import AppConfig
from app.dependencies import get_auth_service, get_config, get_credentials, get_role_admin
from auth.errors import (
    DuplicateEmailError,
    InvalidCredentialsError,
    NotFoundError,
    RoleConflictError,
    ValidationError,
)
from auth.gate import GateDecision
from auth.middleware import (
    clear_session_cookie,
    get_decision,
    get_session_token,
    require_admin,
    require_member,
    set_session_cookie,
)
from auth.models import Session, User
from auth.roles import RoleAdministration, sign_toggle, verify_toggle
from auth.service import AuthenticationService
from auth.validation import RoleToggleCommand, parse
from persistence.users import CredentialStore

_logger = logging.getLogger(__name__)

router = APIRouter(tags=["Web UI"])

# (file, caption) shown on the members page
MEMBER_IMAGES: Tuple[Tuple[str, str], ...] = (
    ("giraffe.gif", "sassy giraffe"),
    ("fish.gif", "spazzy fish"),
    ("penguin.gif", "flying penguin"),
)


def pick_member_image(rng=random) -> Tuple[str, str]:
    """Uniformly random entry of MEMBER_IMAGES."""
    return rng.choice(MEMBER_IMAGES)


# =============================================================================
# Rendering
# =============================================================================


def render_page(title: str, body: str, status_code: int = status.HTTP_200_OK) -> HTMLResponse:
    """Wrap body in the shared page layout."""
    document = f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>{html.escape(title)}</title>
</head>
<body>
  <div class="content">
{body}
  </div>
</body>
</html>"""
    return HTMLResponse(content=document, status_code=status_code)


def render_message(
    heading: str,
    link: str,
    link_text: str,
    status_code: int = status.HTTP_200_OK,
    detail: Optional[str] = None,
) -> HTMLResponse:
    """One-heading page with a single link, used for every error view."""
    body = f"    <h1>{html.escape(heading)}</h1>\n"
    if detail:
        body += f"    <p>{html.escape(detail)}</p>\n"
    body += f'    <a href="{html.escape(link)}">{html.escape(link_text)}</a>'
    return render_page(heading, body, status_code)


def redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url=url, status_code=status.HTTP_302_FOUND)


def _signed_in_redirect(session: Session, config: AppConfig) -> RedirectResponse:
    response = redirect("/members")
    set_session_cookie(
        response,
        session.token,
        max_age=config.session_ttl_seconds,
        secure=config.session_cookie_secure,
    )
    return response


def _user_rows(users: Sequence[User], signing_key: str) -> List[str]:
    rows = []
    for user in users:
        toggle_to = user.role.flipped().value
        query = {
            "email": user.email,
            "role": user.role.value,
            "sig": sign_toggle(signing_key, user.email, user.role),
        }
        href = "/adminControl?" + urlencode(query)
        rows.append(
            "      <tr>"
            f"<td>{html.escape(user.name)}</td>"
            f"<td>{html.escape(user.email)}</td>"
            f"<td>{user.role.value}</td>"
            f'<td><a href="{html.escape(href)}">Make {toggle_to}</a></td>'
            "</tr>"
        )
    return rows


# =============================================================================
# Routes
# =============================================================================


@router.get("/", response_class=HTMLResponse)
async def home(decision: GateDecision = Depends(get_decision)):
    """Welcome page when signed in, login/signup links otherwise."""
    if decision.session is not None:
        name = html.escape(decision.session.name)
        body = (
            f"    <h1>Welcome, {name}</h1>\n"
            '    <a href="/members">VIP Zone</a>\n'
            "    <br><br>\n"
            '    <a href="/logout">Signout</a>'
        )
        return render_page("Home", body)

    body = (
        "    <h1>Welcome</h1>\n"
        '    <a href="/signup">Sign up</a>\n'
        "    <br><br>\n"
        '    <a href="/login">Log in</a>'
    )
    return render_page("Home", body)


@router.get("/login", response_class=HTMLResponse)
async def login_form():
    body = """    <h1>Sign In</h1>
    <form action="/loggingin" method="post">
      <input type="text" name="email" placeholder="email">
      <input type="password" name="password" placeholder="password">
      <button>Submit</button>
    </form>
    <p>or</p>
    <a href="/signup">Signup</a>"""
    return render_page("Sign In", body)


@router.post("/loggingin")
def logging_in(
    email: str = Form(""),
    password: str = Form(""),
    auth_service: AuthenticationService = Depends(get_auth_service),
    config: AppConfig = Depends(get_config),
):
    """Check credentials; malformed input and wrong credentials look the same."""
    try:
        session = auth_service.login(email, password)
    except (ValidationError, InvalidCredentialsError):
        return redirect("/invalidLogin")

    return _signed_in_redirect(session, config)


@router.get("/invalidLogin", response_class=HTMLResponse)
async def invalid_login():
    return render_message("Invalid email/password combination", "/login", "Try again")


@router.get("/signup", response_class=HTMLResponse)
async def signup_form():
    body = """    <h1>Signup</h1>
    <form action="/signupSubmit" method="post">
      <input type="text" name="name" placeholder="name">
      <input type="password" name="password" placeholder="password">
      <input type="text" name="email" placeholder="johnsmith@example.com">
      <button>Submit</button>
    </form>
    <p>or</p>
    <a href="/login">Login</a>"""
    return render_page("Signup", body)


@router.post("/signupSubmit")
def signup_submit(
    name: str = Form(""),
    password: str = Form(""),
    email: str = Form(""),
    auth_service: AuthenticationService = Depends(get_auth_service),
    config: AppConfig = Depends(get_config),
):
    try:
        session = auth_service.signup(email=email, name=name, password=password)
    except ValidationError as e:
        return render_message(
            e.message, "/signup", "Try again", status_code=status.HTTP_400_BAD_REQUEST
        )
    except DuplicateEmailError:
        return render_message(
            "Sorry, that email is being used",
            "/login",
            "Log in instead",
            status_code=status.HTTP_409_CONFLICT,
        )

    return _signed_in_redirect(session, config)


@router.get("/logout")
def logout(
    request: Request,
    auth_service: AuthenticationService = Depends(get_auth_service),
):
    auth_service.logout(get_session_token(request))
    response = redirect("/login")
    clear_session_cookie(response)
    return response


@router.get("/members", response_class=HTMLResponse)
async def members(session: Session = Depends(require_member)):
    image, caption = pick_member_image()
    body = (
        f'    <img src="/img/{image}" alt="{html.escape(caption)}">\n'
        f"    <h1>Hello {html.escape(session.name)}, this is a {html.escape(caption)}</h1>\n"
        '    <a href="/logout">Signout</a>\n'
        "    <br><br>\n"
        '    <a href="/">Home</a>'
    )
    return render_page("Members", body)


@router.get("/admin", response_class=HTMLResponse)
def admin(
    session: Session = Depends(require_admin),
    credentials: CredentialStore = Depends(get_credentials),
):
    """List all users with a role toggle per row."""
    users = credentials.list_users()
    rows = "\n".join(_user_rows(users, session.token))
    body = (
        f"    <h1>Admin</h1>\n"
        f"    <p>Signed in as {html.escape(session.name)}. {len(users)} user(s).</p>\n"
        "    <table>\n"
        "      <tr><th>Name</th><th>Email</th><th>Role</th><th></th></tr>\n"
        f"{rows}\n"
        "    </table>\n"
        '    <a href="/members">Members</a>'
    )
    return render_page("Admin", body)


@router.get("/adminControl")
def admin_control(
    email: str = "",
    role: str = "",
    sig: str = "",
    session: Session = Depends(require_admin),
    role_admin: RoleAdministration = Depends(get_role_admin),
):
    """
    Flip a user's role. `role` is the role the admin saw on the list and
    `sig` the signature the list put on that link for this session.
    """
    try:
        command = parse(RoleToggleCommand, email=email, role=role)
    except ValidationError as e:
        return render_message(
            "Invalid role change", "/admin", "Back", status.HTTP_400_BAD_REQUEST, e.message
        )

    if not verify_toggle(session.token, email, command.role, sig):
        _logger.warning(f"Unsigned role change for {command.email} by {session.email} refused")
        return render_message(
            "Not Authorized", "/admin", "Back", status.HTTP_403_FORBIDDEN,
            "Use the links on the admin page.",
        )

    try:
        new_role = role_admin.toggle_role(command.email, expected_role=command.role)
    except NotFoundError:
        return render_message("No such user", "/admin", "Back", status.HTTP_404_NOT_FOUND)
    except RoleConflictError:
        return render_message(
            "Role changed by someone else",
            "/admin",
            "Reload",
            status.HTTP_409_CONFLICT,
        )

    _logger.info(f"{session.email} set role of {command.email} to {new_role.value}")
    return redirect("/admin")
