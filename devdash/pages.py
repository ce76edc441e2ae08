"""
Server-rendered pages. Each page is a small HTML shell whose script talks to
the JSON API; data never gets baked into the markup except the user's name.
"""

from html import escape
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import HTMLResponse, RedirectResponse

from .auth.dependencies import get_optional_user
from .auth.oauth import error_message
from .config import get_settings
from .database import UserDB
from .services.auth_service import to_user_record

router = APIRouter()

STYLE = """
    body { font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
           margin: 0; background: #f6f8fa; color: #24292e; }
    .container { max-width: 1100px; margin: 0 auto; padding: 20px; }
    .nav { display: flex; gap: 16px; align-items: center; background: #24292e; padding: 12px 20px; }
    .nav a { color: #fff; text-decoration: none; }
    .nav .spacer { flex: 1; }
    .avatar { display: inline-block; width: 28px; height: 28px; line-height: 28px; border-radius: 50%;
              background: #0366d6; color: #fff; text-align: center; font-size: 0.8em; }
    .card { background: #fff; border: 1px solid #e1e4e8; border-radius: 6px; padding: 16px; margin-bottom: 16px; }
    .cards { display: grid; grid-template-columns: repeat(auto-fit, minmax(200px, 1fr)); gap: 16px; }
    .value { font-size: 2em; font-weight: bold; color: #0366d6; }
    .btn { padding: 6px 14px; border: 1px solid #d1d5da; border-radius: 4px; cursor: pointer; background: #fafbfc; }
    .btn-primary { background: #2ea44f; color: #fff; border-color: #2ea44f; }
    .btn-danger { background: #d73a49; color: #fff; border-color: #d73a49; }
    .error { color: #d73a49; }
    .muted { color: #6a737d; font-size: 0.9em; }
    input, textarea, select { padding: 6px; border: 1px solid #d1d5da; border-radius: 4px; }
    table { width: 100%; border-collapse: collapse; }
    td, th { text-align: left; padding: 6px; border-bottom: 1px solid #eaecef; }
"""

SCRIPT_HELPERS = """
    async function api(path, options = {}) {
        const response = await fetch(path, Object.assign({
            credentials: 'same-origin',
            headers: {'Content-Type': 'application/json'}
        }, options));
        if (response.status === 204) return null;
        const data = await response.json();
        if (!response.ok) throw new Error(data.detail || 'Request failed');
        return data;
    }
    function esc(value) {
        const div = document.createElement('div');
        div.textContent = value == null ? '' : String(value);
        return div.innerHTML;
    }
"""


def render_page(title: str, body: str, script: str = "", user: Optional[UserDB] = None) -> str:
    """Wrap ``body`` in the shared layout."""
    settings = get_settings()
    nav = ""
    if user is not None:
        record = to_user_record(user)
        name = escape(record.display_name or record.email or "Account")
        admin_link = '<a href="/admin">Admin</a>' if user.is_admin else ""
        nav = f"""
        <div class="nav">
            <a href="/"><strong>{escape(settings.dashboard_title)}</strong></a>
            <a href="/github">GitHub</a>
            <a href="/account">Account</a>
            {admin_link}
            <span class="spacer"></span>
            <span class="avatar">{escape(record.initials)}</span>
            <span style="color:#fff">{name}</span>
            <button class="btn" onclick="signOut()">Sign out</button>
        </div>"""
        script = script + """
    async function signOut() {
        await api('/api/auth/logout', {method: 'POST'});
        window.location.href = '/login';
    }
"""

    return f"""<!DOCTYPE html>
<html>
<head>
    <title>{escape(title)} - {escape(settings.dashboard_title)}</title>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1">
    <style>{STYLE}</style>
</head>
<body>
    {nav}
    <div class="container">
    {body}
    </div>
    <script>{SCRIPT_HELPERS}{script}</script>
</body>
</html>
"""


def render_credentials_form(mode: str) -> str:
    """Sign-in or sign-up form; ``mode`` is ``login`` or ``signup``."""
    is_signup = mode == "signup"
    title = "Create an account" if is_signup else "Sign in"
    name_field = '<p><input id="display-name" placeholder="Display name"></p>' if is_signup else ""
    switch = ('Already have an account? <a href="/login">Sign in</a>' if is_signup
              else 'New here? <a href="/signup">Create an account</a>')
    endpoint = "/api/auth/signup" if is_signup else "/api/auth/login"

    body = f"""
    <div class="card" style="max-width:400px;margin:60px auto;">
        <h2>{title}</h2>
        <form id="credentials" onsubmit="submitForm(event)">
            {name_field}
            <p><input id="email" type="email" placeholder="Email" required></p>
            <p><input id="password" type="password" placeholder="Password" required></p>
            <p><button class="btn btn-primary" type="submit">{title}</button></p>
        </form>
        <p><a class="btn" href="/api/github/auth?purpose=signin">Continue with GitHub</a></p>
        <p id="form-error" class="error"></p>
        <p class="muted">{switch}</p>
    </div>"""

    script = f"""
    async function submitForm(event) {{
        event.preventDefault();
        const payload = {{
            email: document.getElementById('email').value,
            password: document.getElementById('password').value
        }};
        const nameInput = document.getElementById('display-name');
        if (nameInput) payload.display_name = nameInput.value || null;
        try {{
            await api('{endpoint}', {{method: 'POST', body: JSON.stringify(payload)}});
            window.location.href = '/';
        }} catch (error) {{
            document.getElementById('form-error').textContent = error.message;
        }}
    }}
"""
    return render_page(title, body, script)


def render_dashboard(user: UserDB) -> str:
    """Summary cards, pending reviews, notes, goals and the timer."""
    body = """
    <h1>Welcome back</h1>
    <div class="cards">
        <div class="card"><div class="value" id="open-issues">-</div>Open issues</div>
        <div class="card"><div class="value" id="open-prs">-</div>Open pull requests</div>
        <div class="card"><div class="value" id="reviews">-</div>Reviews waiting</div>
        <div class="card"><div class="value" id="goal-progress">-</div>Goals complete</div>
    </div>
    <div class="card">
        <h3>GitHub</h3>
        <p id="github-status" class="muted">Loading...</p>
        <div id="pending-reviews"></div>
    </div>
    <div class="cards">
        <div class="card">
            <h3>Pomodoro</h3>
            <p>
                <button class="btn" onclick="timer('mode', 'pomodoro')">Pomodoro</button>
                <button class="btn" onclick="timer('mode', 'short')">Short break</button>
                <button class="btn" onclick="timer('mode', 'long')">Long break</button>
            </p>
            <div class="value" id="timer-display">25:00</div>
            <p>
                <button class="btn btn-primary" id="timer-toggle" onclick="timer('toggle')">Start</button>
                <button class="btn" onclick="timer('reset')">Reset</button>
            </p>
        </div>
        <div class="card">
            <h3>Goals</h3>
            <form onsubmit="addGoal(event)"><input id="goal-text" placeholder="New goal"></form>
            <ul id="goals"></ul>
        </div>
        <div class="card">
            <h3>Notes</h3>
            <form onsubmit="addNote(event)"><textarea id="note-text" rows="2" placeholder="New note"></textarea>
            <button class="btn" type="submit">Add</button></form>
            <ul id="notes"></ul>
        </div>
    </div>"""

    script = """
    let timerState = null;

    async function loadSummary() {
        const summary = await api('/api/dashboard/summary');
        document.getElementById('open-issues').textContent = summary.open_issues;
        document.getElementById('open-prs').textContent = summary.open_pull_requests;
        document.getElementById('reviews').textContent = summary.reviews_waiting;
        document.getElementById('goal-progress').textContent = summary.goals.percentage + '%';
        const status = document.getElementById('github-status');
        if (summary.github_status === 'connected') {
            status.textContent = 'Connected as ' + summary.github_username;
            const reviews = await api('/api/dashboard/reviews');
            document.getElementById('pending-reviews').innerHTML = reviews.map(pr =>
                `<p><a href="${esc(pr.html_url)}" target="_blank">${esc(pr.title)}</a>
                 <span class="muted">${esc(pr.repository.full_name)} #${pr.number}</span></p>`).join('');
        } else {
            status.innerHTML = 'Not connected. <a class="btn btn-primary" href="/api/github/auth?purpose=connect">Connect GitHub</a>';
        }
    }

    async function loadNotes() {
        const notes = await api('/api/workspace/notes');
        document.getElementById('notes').innerHTML = notes.map(note =>
            `<li>${esc(note.content)} <button class="btn" onclick="deleteNote('${note.id}')">x</button></li>`).join('');
    }

    async function addNote(event) {
        event.preventDefault();
        const input = document.getElementById('note-text');
        await api('/api/workspace/notes', {method: 'POST', body: JSON.stringify({content: input.value})});
        input.value = '';
        await loadNotes();
        await loadSummary();
    }

    async function deleteNote(id) {
        await api('/api/workspace/notes/' + id, {method: 'DELETE'});
        await loadNotes();
    }

    async function loadGoals() {
        const goals = await api('/api/workspace/goals');
        document.getElementById('goals').innerHTML = goals.map(goal =>
            `<li><input type="checkbox" ${goal.completed ? 'checked' : ''} onchange="toggleGoal('${goal.id}')">
             ${esc(goal.text)} <button class="btn" onclick="deleteGoal('${goal.id}')">x</button></li>`).join('');
    }

    async function addGoal(event) {
        event.preventDefault();
        const input = document.getElementById('goal-text');
        await api('/api/workspace/goals', {method: 'POST', body: JSON.stringify({text: input.value})});
        input.value = '';
        await loadGoals();
        await loadSummary();
    }

    async function toggleGoal(id) {
        await api('/api/workspace/goals/' + id + '/toggle', {method: 'POST'});
        await loadSummary();
    }

    async function deleteGoal(id) {
        await api('/api/workspace/goals/' + id, {method: 'DELETE'});
        await loadGoals();
        await loadSummary();
    }

    function showTimer(state) {
        timerState = state;
        document.getElementById('timer-display').textContent = state.display;
        document.getElementById('timer-toggle').textContent = state.is_running ? 'Pause' : 'Start';
    }

    async function timer(action, mode) {
        showTimer(await api('/api/workspace/timer', {method: 'POST', body: JSON.stringify({action: action, mode: mode})}));
    }

    setInterval(async () => {
        if (timerState && timerState.is_running) showTimer(await api('/api/workspace/timer'));
    }, 1000);

    loadSummary();
    loadNotes();
    loadGoals();
    api('/api/workspace/timer').then(showTimer);
"""
    return render_page("Dashboard", body, script, user)


def render_github_page(user: UserDB) -> str:
    """Issues, pull requests, repository filters and the review form."""
    body = """
    <div class="card">
        <h2>GitHub</h2>
        <p id="connection" class="muted">Loading...</p>
        <p>
            <button class="btn" onclick="refreshAll()">Refresh</button>
            <button class="btn" onclick="clearFilters()">Clear filters</button>
            <button class="btn btn-danger" onclick="disconnect()">Disconnect</button>
        </p>
        <div id="repo-filters"></div>
        <p id="github-error" class="error"></p>
    </div>
    <div class="card">
        <h3>Assigned issues</h3>
        <input id="issue-search" placeholder="Search issues" oninput="renderIssues()">
        <table id="issues"></table>
    </div>
    <div class="card">
        <h3>Pull requests</h3>
        <table id="pull-requests"></table>
    </div>
    <div class="card" id="review-form" style="display:none">
        <h3 id="review-title"></h3>
        <select id="review-type">
            <option value="COMMENT">Comment</option>
            <option value="APPROVE">Approve</option>
            <option value="REQUEST_CHANGES">Request changes</option>
        </select>
        <p><textarea id="review-comment" rows="4" cols="60"></textarea></p>
        <button class="btn btn-primary" onclick="submitReview()">Submit review</button>
        <p id="review-message"></p>
    </div>"""

    script = """
    let state = null;
    let reviewing = null;

    function render(newState) {
        state = newState;
        const connection = document.getElementById('connection');
        if (state.status !== 'connected') {
            connection.innerHTML = 'Not connected. <a class="btn btn-primary" href="/api/github/auth?purpose=connect">Connect GitHub</a>';
        } else {
            connection.textContent = 'Connected as ' + state.username;
        }
        document.getElementById('github-error').textContent = state.last_error || '';
        document.getElementById('repo-filters').innerHTML = state.repos.map(repo =>
            `<label><input type="checkbox" ${state.selected_repos.includes(repo.full_name) ? 'checked' : ''}
              onchange="toggleRepo('${esc(repo.full_name)}')"> ${esc(repo.full_name)}</label> `).join('');
        renderIssues();
        document.getElementById('pull-requests').innerHTML = state.pull_requests.map(pr =>
            `<tr><td><a href="${esc(pr.html_url)}" target="_blank">${esc(pr.title)}</a></td>
             <td>${esc(pr.repository.full_name)} #${pr.number}</td>
             <td>${esc(pr.status_text)}</td>
             <td class="muted">${esc(pr.review_summary || '')}</td>
             <td>${pr.can_review ? `<button class="btn" onclick="openReview(${pr.id})">Review</button>` : ''}</td></tr>`).join('');
    }

    function renderIssues() {
        if (!state) return;
        const term = document.getElementById('issue-search').value.toLowerCase();
        const issues = state.issues.filter(issue => !term
            || issue.title.toLowerCase().includes(term)
            || issue.repository.full_name.toLowerCase().includes(term)
            || issue.labels.some(label => label.name.toLowerCase().includes(term)));
        document.getElementById('issues').innerHTML = issues.map(issue =>
            `<tr><td><a href="${esc(issue.html_url)}" target="_blank">${esc(issue.title)}</a></td>
             <td>${esc(issue.repository.full_name)}</td>
             <td>${issue.labels.map(label => esc(label.name)).join(', ')}</td></tr>`).join('');
    }

    async function refreshAll() {
        try {
            render(await api('/api/github/connection/refresh', {method: 'POST'}));
        } catch (error) {
            render(await api('/api/github/connection'));
        }
    }

    async function toggleRepo(name) {
        render(await api('/api/github/filters/toggle', {method: 'POST', body: JSON.stringify({repo_full_name: name})}));
    }

    async function clearFilters() {
        render(await api('/api/github/filters', {method: 'DELETE'}));
    }

    async function disconnect() {
        render(await api('/api/github/connection', {method: 'DELETE'}));
    }

    function openReview(id) {
        reviewing = state.pull_requests.find(pr => pr.id === id);
        document.getElementById('review-title').textContent = 'Review: ' + reviewing.title;
        document.getElementById('review-form').style.display = 'block';
        document.getElementById('review-message').textContent = '';
    }

    async function submitReview() {
        const result = await api('/api/github/reviews', {method: 'POST', body: JSON.stringify({
            pull_request_id: reviewing.id,
            repository_full_name: reviewing.repository.full_name,
            pull_request_number: reviewing.number,
            review_type: document.getElementById('review-type').value,
            comment: document.getElementById('review-comment').value
        })});
        const message = document.getElementById('review-message');
        message.textContent = result.message;
        message.className = result.success ? '' : 'error';
        if (result.success) render(await api('/api/github/connection'));
    }

    api('/api/github/connection').then(render).then(refreshAll);
"""
    return render_page("GitHub", body, script, user)


def render_account(user: UserDB) -> str:
    """Profile details, GitHub linking and account deletion."""
    providers = user.auth_providers or []
    has_password = "password" in providers
    link = "" if "github.com" in providers else \
        '<p><a class="btn" href="/api/github/auth?purpose=link">Link GitHub account</a></p>'
    password_field = '<p><input id="delete-password" type="password" placeholder="Current password"></p>' \
        if has_password else '<p class="muted">You will be asked to sign in with GitHub again.</p>'

    body = f"""
    <div class="card">
        <h2>Account</h2>
        <p>Email: {escape(user.email or "-")}</p>
        <p>Name: {escape(user.display_name or "-")}</p>
        <p>Sign-in methods: {escape(", ".join(providers) or "-")}</p>
        <p>GitHub: {escape(user.github_username or "not connected")}</p>
        {link}
    </div>
    <div class="card">
        <h3 class="error">Delete account</h3>
        <p>This removes your notes, goals and profile. Type DELETE to confirm.</p>
        <p><input id="confirmation" placeholder="DELETE"></p>
        {password_field}
        <button class="btn btn-danger" onclick="deleteAccount()">Delete my account</button>
        <p id="delete-error" class="error"></p>
    </div>"""

    script = """
    async function deleteAccount() {
        const passwordInput = document.getElementById('delete-password');
        try {
            const result = await api('/api/account/delete', {method: 'POST', body: JSON.stringify({
                confirmation: document.getElementById('confirmation').value,
                password: passwordInput ? passwordInput.value : null
            })});
            window.location.href = result.status === 'reauth_required' ? result.redirect : '/login';
        } catch (error) {
            document.getElementById('delete-error').textContent = error.message;
        }
    }
"""
    return render_page("Account", body, script, user)


def render_admin(user: UserDB) -> str:
    """User management table with cursor paging."""
    body = """
    <div class="card">
        <h2>Users</h2>
        <p id="overview" class="muted"></p>
        <input id="user-search" placeholder="Search users" onchange="loadUsers(null)">
        <table id="users"></table>
        <p><button class="btn" id="next-page" onclick="loadUsers(nextCursor)" style="display:none">Next page</button></p>
        <p id="admin-error" class="error"></p>
    </div>"""

    script = """
    let nextCursor = null;

    async function loadOverview() {
        const overview = await api('/api/admin/overview');
        document.getElementById('overview').textContent =
            `${overview.total_users} users, ${overview.active_users} active, ${overview.admin_users} admins`;
    }

    async function loadUsers(cursor) {
        const params = new URLSearchParams();
        if (cursor) params.set('cursor', cursor);
        const search = document.getElementById('user-search').value;
        if (search) params.set('search', search);
        const page = await api('/api/admin/users?' + params.toString());
        nextCursor = page.next_cursor;
        document.getElementById('next-page').style.display = nextCursor ? 'inline' : 'none';
        document.getElementById('users').innerHTML = page.users.map(u =>
            `<tr><td>${esc(u.email)}</td><td>${esc(u.display_name)}</td>
             <td>${esc(u.auth_providers.join(', '))}</td>
             <td>${u.is_active ? 'Active' : 'Suspended'}</td>
             <td>
               <button class="btn" onclick="setAdmin('${u.id}', ${!u.is_admin}, ${u.version})">${u.is_admin ? 'Revoke admin' : 'Make admin'}</button>
               <button class="btn" onclick="setActive('${u.id}', ${!u.is_active}, ${u.version})">${u.is_active ? 'Suspend' : 'Reactivate'}</button>
               <button class="btn btn-danger" onclick="removeUser('${u.id}')">Delete</button>
             </td></tr>`).join('');
    }

    async function run(action) {
        try {
            await action();
            await loadUsers(null);
            await loadOverview();
        } catch (error) {
            document.getElementById('admin-error').textContent = error.message;
        }
    }

    function setAdmin(id, value, version) {
        run(() => api(`/api/admin/users/${id}/admin`, {method: 'PUT',
            body: JSON.stringify({is_admin: value, expected_version: version})}));
    }

    function setActive(id, value, version) {
        run(() => api(`/api/admin/users/${id}/status`, {method: 'PUT',
            body: JSON.stringify({is_active: value, expected_version: version})}));
    }

    function removeUser(id) {
        if (confirm('Delete this user and all their data?')) {
            run(() => api(`/api/admin/users/${id}`, {method: 'DELETE'}));
        }
    }

    loadOverview();
    loadUsers(null);
"""
    return render_page("Admin", body, script, user)


def render_github_error(code: Optional[str]) -> str:
    body = f"""
    <div class="card" style="max-width:500px;margin:60px auto;">
        <h2>GitHub connection failed</h2>
        <p class="error">{escape(error_message(code))}</p>
        <p><a class="btn" href="/">Back to the dashboard</a></p>
    </div>"""
    return render_page("GitHub error", body)


def _login_redirect() -> RedirectResponse:
    return RedirectResponse("/login", status_code=302)


@router.get("/login", response_class=HTMLResponse)
async def login_page():
    return render_credentials_form("login")


@router.get("/signup", response_class=HTMLResponse)
async def signup_page():
    return render_credentials_form("signup")


@router.get("/", response_class=HTMLResponse)
async def dashboard_page(user: Optional[UserDB] = Depends(get_optional_user)):
    if user is None:
        return _login_redirect()
    return render_dashboard(user)


@router.get("/github", response_class=HTMLResponse)
async def github_page(user: Optional[UserDB] = Depends(get_optional_user)):
    if user is None:
        return _login_redirect()
    return render_github_page(user)


@router.get("/account", response_class=HTMLResponse)
async def account_page(user: Optional[UserDB] = Depends(get_optional_user)):
    if user is None:
        return _login_redirect()
    return render_account(user)


@router.get("/admin", response_class=HTMLResponse)
async def admin_page(user: Optional[UserDB] = Depends(get_optional_user)):
    """Admin panel; non-admins see a plain unauthorized notice."""
    if user is None:
        return _login_redirect()
    if not user.is_admin:
        body = '<div class="card"><h2>Unauthorized</h2><p>You do not have access to this page.</p></div>'
        return HTMLResponse(render_page("Admin", body, user=user), status_code=403)
    return render_admin(user)


@router.get("/github-error", response_class=HTMLResponse)
async def github_error_page(error: Optional[str] = Query(None)):
    return render_github_error(error)
