"""Web dashboard - customer table, inline editing and notifications

A single-page dashboard over the Markdown customer table:
1. Filterable, sortable customer table with inline editing and autosave
2. Outreach message preview from the template document
3. Notification check (preview or send to Discord)

Usage:
    ```python
    channel = WebChannel(store=CustomerStore("data/customers.md"), port=8080)
    await channel.startup()
    # open http://localhost:8080
    ```
"""
import asyncio
import threading
from typing import Any, Dict, Optional, Tuple

from loguru import logger

from business.editing import AutoSaver, EditSession, RecordNotFound
from business.messaging import SenderProfile, render_messages
from business.notifications import run_notification_check
from business.schedule import refresh_scheduled_dates
from business.stats import summarize
from business.views import SortState, ViewFilters, apply_view, column_index
from config.business_config import get_options
from database.manager import CustomerStore
from database.models import CustomerRecord
from interface.base import Channel
from interface.discord.channel import DiscordChannel, NotificationError


def _tri_state(value: Optional[str]) -> Optional[bool]:
    """Query flag: "true" / "false", anything else means unset."""
    if value is None:
        return None
    value = value.strip().lower()
    if value in ("true", "1"):
        return True
    if value in ("false", "0"):
        return False
    return None


def view_query(
    action: str = "",
    q: str = "",
    favorite: Optional[str] = None,
    trouble: Optional[str] = None,
    gender: str = "",
    age: str = "",
    min_transactions: str = "",
    sort: Optional[str] = None,
    direction: str = "asc",
) -> Tuple[ViewFilters, SortState]:
    """Table filters and sort order from the query string."""
    filters = ViewFilters(
        action=action,
        search=q,
        favorite=_tri_state(favorite),
        trouble=_tri_state(trouble),
        gender=gender,
        age=age,
        min_transactions=min_transactions,
    )
    return filters, SortState(column_index(sort), "desc" if direction == "desc" else "asc")


class WebChannel(Channel):
    """Web dashboard channel

    FastAPI application served by uvicorn in a background thread.

    Routes:
    - GET   /                              -> dashboard (SPA)
    - GET   /api/options                   -> select options
    - GET   /api/customers                 -> filtered / sorted customers
    - POST  /api/customers                 -> replace the whole table
    - PATCH /api/customers/{id}            -> edit one field (autosaved)
    - POST  /api/customers/save            -> save pending edits now
    - GET   /api/customers/{id}/messages   -> rendered outreach messages
    - GET   /api/templates                 -> template definitions
    - GET   /api/stats                     -> dashboard statistics
    - GET|POST /api/notifications/check    -> notification check (?test=true previews)
    - GET   /health                        -> health check
    """

    def __init__(
        self,
        store: CustomerStore,
        notifier: Optional[DiscordChannel] = None,
        host: str = "127.0.0.1",
        port: int = 8080,
        autosave_delay: float = 2.0,
        horizon_days: int = 1,
        profile: Optional[SenderProfile] = None,
    ):
        super().__init__("web")
        self.store = store
        self.notifier = notifier or DiscordChannel()
        self.host = host
        self.port = port
        self.horizon_days = horizon_days
        self.profile = profile or SenderProfile(company_name="", person_name="")
        self.session = EditSession()
        self.saver = AutoSaver(self.session.snapshot, store.save_customers, delay=autosave_delay)
        self._loaded = False
        self.app = None
        self._server_thread: Optional[threading.Thread] = None
        self._server = None  # uvicorn.Server
        self._server_loop = None

    def load(self, force: bool = False) -> None:
        """(Re)read the table unless unsaved edits would be lost."""
        if self._loaded and not force:
            return
        if self.saver.dirty or self.saver.saving:
            logger.info("未保存の変更があるため再読み込みをスキップしました")
            return
        self.session.replace_all(self.store.load_customers())
        self._loaded = True

    def current_records(self, reload: bool = False):
        self.load(force=reload)
        return refresh_scheduled_dates(self.session.records)

    def _create_app(self):
        """Build the FastAPI application"""
        from fastapi import Depends, FastAPI, Request
        from fastapi.responses import HTMLResponse, JSONResponse

        app = FastAPI(
            title="顧客管理ダッシュボード",
            description="Markdown 顧客表の閲覧・編集と営業アクション通知",
            version="1.0.0",
        )

        def error(status_code: int, message: str):
            return JSONResponse(status_code=status_code, content={"ok": False, "message": message})

        # ==================== Page ====================

        @app.get("/", response_class=HTMLResponse)
        async def index():
            return APP_HTML

        @app.get("/api/options")
        async def options():
            return get_options()

        # ==================== Customers ====================

        @app.get("/api/customers")
        async def customers_list(reload: bool = False, view=Depends(view_query)):
            filters, sort = view
            try:
                records = self.current_records(reload=reload)
            except (OSError, UnicodeDecodeError) as e:
                logger.error(f"顧客データの読み込みに失敗しました: {e}")
                return error(500, "顧客データの読み込みに失敗しました。")
            visible = apply_view(records, filters, sort)
            return {
                "data": [record.to_dict() for record in visible],
                "total": len(records),
                "autosave": self.saver.status(),
            }

        @app.post("/api/customers")
        async def customers_replace(request: Request):
            try:
                body = await request.json()
            except ValueError:
                return error(400, "不正なリクエストです。")
            raw_records = body.get("records") if isinstance(body, dict) else None
            if not isinstance(raw_records, list) or not all(isinstance(r, dict) for r in raw_records):
                return error(400, "不正なリクエストです。")

            records = refresh_scheduled_dates([CustomerRecord.from_dict(r) for r in raw_records])
            try:
                await self.saver.save_records(records)
            except (OSError, UnicodeDecodeError) as e:
                logger.error(f"顧客データの保存に失敗しました: {e}")
                return error(500, "保存に失敗しました。")
            self.session.replace_all(records)
            self._loaded = True
            return {"ok": True, "count": len(records)}

        @app.post("/api/customers/save")
        async def customers_save():
            if not self.saver.dirty:
                return {"ok": True, "message": "変更はありません。"}
            if await self.saver.flush():
                return {"ok": True, "message": "顧客データを保存しました。"}
            if self.saver.saving:
                return error(409, "保存中です。しばらくしてから再度お試しください。")
            return error(500, self.saver.last_error or "保存に失敗しました。")

        @app.patch("/api/customers/{record_id}")
        async def customers_edit(record_id: str, data: Dict[str, Any]):
            self.load()
            try:
                if "toggle" in data:
                    record = self.session.toggle_mark(record_id, str(data["toggle"]))
                elif "field" in data:
                    record = self.session.update_field(record_id, str(data["field"]), data.get("value"))
                else:
                    return error(400, "field または toggle を指定してください。")
            except RecordNotFound:
                return error(404, "顧客が見つかりません。再読み込みしてください。")
            except ValueError as e:
                return error(400, str(e))
            self.saver.mark_dirty()
            return {"ok": True, "record": record.to_dict(), "autosave": self.saver.status()}

        @app.get("/api/customers/{record_id}/messages")
        async def customer_messages(record_id: str):
            self.load()
            try:
                record = self.session.find(record_id)
            except RecordNotFound:
                return error(404, "顧客が見つかりません。再読み込みしてください。")
            templates = self.store.load_templates()
            return {"ok": True, "messages": render_messages(record, templates, self.profile)}

        @app.get("/api/templates")
        async def templates_list():
            return {"data": [template.to_dict() for template in self.store.load_templates()]}

        @app.get("/api/stats")
        async def stats(view=Depends(view_query)):
            filters, sort = view
            records = self.current_records()
            return summarize(apply_view(records, filters, sort), records)

        # ==================== Notifications ====================

        @app.api_route("/api/notifications/check", methods=["GET", "POST"])
        async def notifications_check(test: bool = False):
            loop = asyncio.get_running_loop()
            try:
                return await loop.run_in_executor(
                    None,
                    lambda: run_notification_check(
                        self.store,
                        self.notifier,
                        horizon_days=self.horizon_days,
                        test_mode=test,
                    ),
                )
            except (NotificationError, OSError, UnicodeDecodeError) as e:
                logger.error(f"通知チェックエラー: {e}")
                return error(500, str(e))

        # ==================== Health ====================

        @app.get("/health")
        async def health_check():
            return {
                "status": "ok",
                "channel": "web",
                "running": self.running,
                "customers_file": str(self.store.customers_path),
                "autosave": self.saver.status(),
            }

        return app

    async def startup(self):
        """Start the web server"""
        import uvicorn

        self.app = self._create_app()
        self.running = True

        def run_server():
            """Run uvicorn on its own event loop in this thread"""
            loop = asyncio.new_event_loop()
            asyncio.set_event_loop(loop)
            self._server_loop = loop

            config = uvicorn.Config(
                self.app,
                host=self.host,
                port=self.port,
                log_level="warning",
                loop="asyncio",
            )
            self._server = uvicorn.Server(config)
            # Signals are handled by app.py
            self._server.install_signal_handlers = lambda: None

            try:
                loop.run_until_complete(self._server.serve())
            except Exception as e:
                logger.error(f"サーバー実行中にエラーが発生しました: {e}")
            finally:
                pending = asyncio.all_tasks(loop)
                for task in pending:
                    task.cancel()
                if pending:
                    loop.run_until_complete(asyncio.gather(*pending, return_exceptions=True))
                loop.run_until_complete(loop.shutdown_asyncgens())
                loop.close()

        self._server_thread = threading.Thread(target=run_server, daemon=True)
        self._server_thread.start()

        waited = 0.0
        while self._server is None and waited < 5:
            await asyncio.sleep(0.1)
            waited += 0.1

        logger.info(f"ダッシュボードを起動しました: http://{self.host}:{self.port}")

    def _flush_before_exit(self) -> None:
        if not (self.saver.dirty or self.saver.saving):
            return
        if self._server_loop is None or not self._server_loop.is_running():
            return
        future = asyncio.run_coroutine_threadsafe(self.saver.flush(), self._server_loop)
        try:
            future.result(timeout=10)
        except Exception as e:
            logger.error(f"終了前の保存に失敗しました: {e}")

    async def shutdown(self):
        """Save pending edits, then stop the web server"""
        self.running = False

        if self._server is not None:
            try:
                self._flush_before_exit()
                logger.info("ダッシュボードを停止しています...")
                self._server.should_exit = True

                if self._server_thread and self._server_thread.is_alive():
                    self._server_thread.join(timeout=3.0)

                if self._server_thread and self._server_thread.is_alive():
                    logger.warning("3 秒以内に停止しなかったため強制終了します")
                    self._server.force_exit = True
                    self._server_thread.join(timeout=2.0)
            finally:
                self._server = None
                self._server_loop = None
                self._server_thread = None

        logger.info("ダッシュボードを停止しました")


# ==================== Frontend SPA HTML ====================

APP_HTML = """<!DOCTYPE html>
<html lang="ja">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>顧客管理ダッシュボード</title>
    <style>
        :root {
            --primary: #4f46e5;
            --bg: #0f172a;
            --card: #1e293b;
            --text: #f1f5f9;
            --text-secondary: #94a3b8;
            --border: #334155;
            --success: #22c55e;
            --danger: #ef4444;
        }
        * { margin: 0; padding: 0; box-sizing: border-box; }
        body { font-family: -apple-system, "Hiragino Sans", "Noto Sans JP", sans-serif; background: var(--bg); color: var(--text); font-size: 14px; }
        header { display: flex; align-items: center; justify-content: space-between; padding: 16px 24px; border-bottom: 1px solid var(--border); }
        h1 { font-size: 18px; }
        button { background: var(--primary); color: #fff; border: none; border-radius: 6px; padding: 6px 12px; cursor: pointer; }
        button.secondary { background: var(--card); border: 1px solid var(--border); }
        .stats { display: flex; gap: 12px; padding: 12px 24px; flex-wrap: wrap; }
        .stat { background: var(--card); border: 1px solid var(--border); border-radius: 8px; padding: 8px 14px; }
        .stat .label { color: var(--text-secondary); font-size: 12px; }
        .stat .value { font-size: 18px; font-weight: 600; }
        .filters { display: flex; gap: 8px; padding: 0 24px 12px; flex-wrap: wrap; }
        input, select { background: var(--card); color: var(--text); border: 1px solid var(--border); border-radius: 6px; padding: 4px 6px; }
        .table-wrap { overflow-x: auto; padding: 0 24px 24px; }
        table { border-collapse: collapse; width: 100%; }
        th, td { border-bottom: 1px solid var(--border); padding: 6px; text-align: left; white-space: nowrap; }
        th { cursor: pointer; color: var(--text-secondary); user-select: none; }
        td input.wide { width: 220px; }
        td.readonly { color: var(--text-secondary); }
        .mark { cursor: pointer; opacity: 0.3; }
        .mark.on { opacity: 1; }
        #notice { position: fixed; right: 24px; bottom: 24px; padding: 10px 16px; border-radius: 8px; display: none; }
        #notice.success { display: block; background: var(--success); }
        #notice.error { display: block; background: var(--danger); }
        #preview { white-space: pre-wrap; background: var(--card); border: 1px solid var(--border); border-radius: 8px; margin: 0 24px 24px; padding: 12px; display: none; }
    </style>
</head>
<body>
<header>
    <h1>顧客管理ダッシュボード</h1>
    <div>
        <span id="save-state"></span>
        <button class="secondary" onclick="saveNow()">保存</button>
        <button class="secondary" onclick="checkNotifications(true)">通知プレビュー</button>
        <button onclick="checkNotifications(false)">通知送信</button>
    </div>
</header>
<div class="stats" id="stats"></div>
<div class="filters">
    <select id="f-action" onchange="reloadView()"><option value="">アクション: すべて</option></select>
    <input id="f-q" placeholder="検索" oninput="scheduleReload()">
    <select id="f-favorite" onchange="reloadView()"><option value="">⭐ すべて</option><option value="true">⭐ のみ</option><option value="false">⭐ なし</option></select>
    <select id="f-trouble" onchange="reloadView()"><option value="">✗ すべて</option><option value="true">✗ のみ</option><option value="false">✗ なし</option></select>
    <select id="f-gender" onchange="reloadView()"><option value="">性別: すべて</option></select>
    <select id="f-age" onchange="reloadView()"><option value="">年齢: すべて</option></select>
    <input id="f-min" placeholder="取引回数 以上" size="8" oninput="scheduleReload()">
    <button class="secondary" onclick="clearFilters()">クリア</button>
</div>
<pre id="preview"></pre>
<div class="table-wrap">
    <table>
        <thead><tr id="head"></tr></thead>
        <tbody id="rows"></tbody>
    </table>
</div>
<div id="notice"></div>
<script>
const COLUMNS = ['⭐', '✗', '顧客名', '次のアクション', '連絡先', '最終連絡日', '実行予定日', '取引回数', '総額', '性別', '年齢', '関係性/メモ', ''];
let options = { actions: [], genders: [], ages: [], transactions: [] };
let sortState = { column: null, direction: 'asc' };
let reloadTimer = null;

function notify(message, variant) {
    const el = document.getElementById('notice');
    el.textContent = message;
    el.className = variant;
    setTimeout(() => { el.className = ''; }, 4000);
}

function fillSelect(id, values) {
    const el = document.getElementById(id);
    values.forEach((v) => { const o = document.createElement('option'); o.value = v; o.textContent = v; el.appendChild(o); });
}

function queryString(extra) {
    const params = new URLSearchParams(extra || {});
    const map = { action: 'f-action', q: 'f-q', favorite: 'f-favorite', trouble: 'f-trouble', gender: 'f-gender', age: 'f-age', min_transactions: 'f-min' };
    Object.entries(map).forEach(([key, id]) => { const v = document.getElementById(id).value; if (v) params.set(key, v); });
    if (sortState.column !== null) { params.set('sort', sortState.column); params.set('direction', sortState.direction); }
    return params.toString();
}

function scheduleReload() {
    clearTimeout(reloadTimer);
    reloadTimer = setTimeout(reloadView, 300);
}

function clearFilters() {
    ['f-action', 'f-q', 'f-favorite', 'f-trouble', 'f-gender', 'f-age', 'f-min'].forEach((id) => { document.getElementById(id).value = ''; });
    reloadView();
}

function renderHead() {
    const head = document.getElementById('head');
    head.innerHTML = '';
    COLUMNS.forEach((label, index) => {
        const th = document.createElement('th');
        const arrow = sortState.column === index ? (sortState.direction === 'asc' ? ' ▲' : ' ▼') : '';
        th.textContent = label + arrow;
        if (index < 12) th.onclick = () => toggleSort(index);
        head.appendChild(th);
    });
}

function toggleSort(index) {
    if (sortState.column === index) {
        sortState.direction = sortState.direction === 'asc' ? 'desc' : 'asc';
    } else {
        sortState = { column: index, direction: 'asc' };
    }
    renderHead();
    reloadView();
}

async function patch(id, body) {
    const res = await fetch('/api/customers/' + id, { method: 'PATCH', headers: { 'Content-Type': 'application/json' }, body: JSON.stringify(body) });
    const data = await res.json();
    if (!res.ok) { notify(data.message || '更新に失敗しました。', 'error'); return null; }
    document.getElementById('save-state').textContent = '未保存の変更あり';
    return data.record;
}

function selectCell(record, key, values) {
    const el = document.createElement('select');
    ['', ...values].forEach((v) => { const o = document.createElement('option'); o.value = v; o.textContent = v || '-'; el.appendChild(o); });
    if (record[key] && !values.includes(record[key])) { const o = document.createElement('option'); o.value = record[key]; o.textContent = record[key]; el.appendChild(o); }
    el.value = record[key] || '';
    return el;
}

function editableCell(record, key, kind) {
    const td = document.createElement('td');
    let el;
    if (kind === 'action') el = selectCell(record, key, options.actions.map((a) => a.name));
    else if (kind === 'gender') el = selectCell(record, key, options.genders);
    else if (kind === 'age') el = selectCell(record, key, options.ages);
    else if (kind === 'count') el = selectCell(record, key, options.transactions);
    else { el = document.createElement('input'); el.value = record[key] || ''; if (kind === 'wide') el.className = 'wide'; }
    el.onchange = async () => {
        const updated = await patch(record.id, { field: key, value: el.value });
        if (updated) { Object.assign(record, updated); renderRow(record); }
    };
    td.appendChild(el);
    return td;
}

function markCell(record, key, symbol) {
    const td = document.createElement('td');
    td.textContent = symbol;
    td.className = 'mark' + (record[key] ? ' on' : '');
    td.onclick = async () => {
        const updated = await patch(record.id, { toggle: key });
        if (updated) { Object.assign(record, updated); renderRow(record); }
    };
    return td;
}

function buildRow(record) {
    const tr = document.createElement('tr');
    tr.id = 'row-' + record.id;
    tr.appendChild(markCell(record, 'isFavorite', '⭐'));
    tr.appendChild(markCell(record, 'hasTrouble', '✗'));
    tr.appendChild(editableCell(record, 'customerName', 'text'));
    tr.appendChild(editableCell(record, 'nextAction', 'action'));
    tr.appendChild(editableCell(record, 'contactUrl', 'text'));
    tr.appendChild(editableCell(record, 'lastContactDate', 'text'));
    const scheduled = document.createElement('td');
    scheduled.className = 'readonly';
    scheduled.textContent = record.scheduledDate || '-';
    tr.appendChild(scheduled);
    tr.appendChild(editableCell(record, 'transactionCount', 'count'));
    tr.appendChild(editableCell(record, 'totalAmount', 'text'));
    tr.appendChild(editableCell(record, 'gender', 'gender'));
    tr.appendChild(editableCell(record, 'age', 'age'));
    tr.appendChild(editableCell(record, 'notes', 'wide'));
    const actions = document.createElement('td');
    const button = document.createElement('button');
    button.className = 'secondary';
    button.textContent = '文面';
    button.onclick = () => showMessages(record.id);
    actions.appendChild(button);
    tr.appendChild(actions);
    return tr;
}

function renderRow(record) {
    const old = document.getElementById('row-' + record.id);
    if (old) old.replaceWith(buildRow(record));
}

async function reloadView(extra) {
    const res = await fetch('/api/customers?' + queryString(extra));
    const data = await res.json();
    if (!res.ok) { notify(data.message || '読み込みに失敗しました。', 'error'); return; }
    const rows = document.getElementById('rows');
    rows.innerHTML = '';
    data.data.forEach((record) => rows.appendChild(buildRow(record)));
    loadStats();
}

async function loadStats() {
    const res = await fetch('/api/stats?' + queryString());
    const s = await res.json();
    const cards = [['表示中の顧客', s.totalCustomers], ['総額', s.totalAmount.toLocaleString() + '円'], ['要対応', s.urgentCount], ['今月の新規', s.newCustomersThisMonth], ['今月のコンタクト', s.contactsThisMonth]];
    document.getElementById('stats').innerHTML = cards.map(([label, value]) => '<div class="stat"><div class="label">' + label + '</div><div class="value">' + value + '</div></div>').join('');
}

async function saveNow() {
    const res = await fetch('/api/customers/save', { method: 'POST' });
    const data = await res.json();
    notify(data.message, res.ok ? 'success' : 'error');
    if (res.ok) document.getElementById('save-state').textContent = '';
}

async function showMessages(id) {
    const res = await fetch('/api/customers/' + id + '/messages');
    const data = await res.json();
    const el = document.getElementById('preview');
    if (!res.ok) { notify(data.message, 'error'); return; }
    const parts = Object.entries(data.messages).filter(([, m]) => m).map(([variant, m]) => '【' + m.title + ' / ' + variant + '】' + String.fromCharCode(10) + m.message);
    el.textContent = parts.length ? parts.join(String.fromCharCode(10, 10)) : '該当するテンプレートがありません。';
    el.style.display = 'block';
}

async function checkNotifications(test) {
    const res = await fetch('/api/notifications/check' + (test ? '?test=true' : ''), { method: 'POST' });
    const data = await res.json();
    if (!res.ok) { notify(data.message, 'error'); return; }
    if (test) {
        const el = document.getElementById('preview');
        const lines = (data.customers || []).map((c) => c.customerName + ' / ' + c.nextAction + ' / ' + (c.calculatedScheduledDate || '-'));
        el.textContent = '通知対象: ' + data.customersCount + '件' + String.fromCharCode(10) + lines.join(String.fromCharCode(10));
        el.style.display = 'block';
    }
    notify(data.message, 'success');
}

async function init() {
    options = await (await fetch('/api/options')).json();
    fillSelect('f-action', options.actions.map((a) => a.name));
    fillSelect('f-gender', options.genders);
    fillSelect('f-age', options.ages);
    renderHead();
    await reloadView({ reload: 'true' });
}

init();
</script>
</body>
</html>
"""
