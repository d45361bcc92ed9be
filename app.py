# -----------------------------------------------
# ⏱️ Schichttracker (Streamlit)
# -----------------------------------------------
# Requires: streamlit, sqlmodel, pandas, reportlab, psycopg2-binary (for Postgres)
# The dashboard fragment re-runs every TICK_SECONDS and auto-starts due shifts.

import logging
from datetime import date, datetime, timedelta

import pandas as pd
import streamlit as st

import config
from aggregation import WorkHoursAggregator, day_marker, next_shift, running_shift, shifts_for_day
from domain import ShiftStatus
from errors import InvalidInput, InvalidTransition, StorageError
from report import month_report_pdf, month_title, shifts_to_dataframe
from repository import ShiftRepository
from services import effective_start, live_duration
from tracker import FORM_FORMAT, ShiftTracker, edit_patch
from utils import format_instant, format_minutes

logging.basicConfig(level=config.log_level(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger("app")

DB_URL = config.database_url()
OWNER_ID = config.owner_id()
TICK = timedelta(seconds=config.tick_seconds())
AGG = WorkHoursAggregator(week_start=config.WEEK_START)
WEEKDAYS = ["Mo", "Di", "Mi", "Do", "Fr", "Sa", "So"]
MARKERS = {"next": "🟢", "upcoming": "🟡", "past": "⚪"}


@st.cache_resource
def get_repo(url: str):
    return ShiftRepository(url, echo=False)


def get_tracker() -> ShiftTracker:
    if "tracker" not in st.session_state:
        tracker = ShiftTracker(get_repo(DB_URL), OWNER_ID)
        if tracker.refresh():
            logger.info("Loaded %d shift(s) for %s", len(tracker.shifts), OWNER_ID)
        else:
            st.error("Schichten konnten nicht geladen werden.")
        st.session_state["tracker"] = tracker
    return st.session_state["tracker"]


def run_action(action, success: str | None = None) -> bool:
    """Runs a tracker call and reports rejected input or storage failures."""
    try:
        action()
    except (InvalidInput, InvalidTransition) as e:
        st.warning(str(e))
        return False
    except StorageError as e:
        st.error(f"Speichern fehlgeschlagen: {e}")
        return False
    if success:
        st.session_state["_flash_success"] = success
    return True


def now_local() -> datetime:
    return datetime.now().replace(microsecond=0)


st.set_page_config(page_title=config.APP_TITLE, page_icon="⏱️", layout="centered")
st.title(f"⏱️ {config.APP_TITLE}")

tracker = get_tracker()

if st.session_state.pop("_reset_finish_form", False):
    for k in ("finish_end", "finish_pause"):
        st.session_state.pop(k, None)

msg = st.session_state.pop("_flash_success", None)
if msg:
    st.success(msg)


# =========================
# Dashboard (periodic tick)
# =========================
@st.fragment(run_every=TICK)
def dashboard():
    now = now_local()
    try:
        if tracker.tick(now):
            st.session_state["_flash_success"] = "Schicht automatisch gestartet."
            st.rerun()
    except StorageError as e:
        st.error(f"Auto-Start konnte nicht gespeichert werden: {e}")

    current = running_shift(tracker.shifts)
    upcoming = next_shift(tracker.shifts, now)
    if current:
        minutes = live_duration(current, now)
        st.subheader("Schicht läuft")
        st.write(f"Gestartet: {format_instant(effective_start(current), '%H:%M')}")
        st.metric("Dauer", format_minutes(minutes))
        st.progress(min(minutes / config.LIVE_TARGET_MINUTES, 1.0))
    elif upcoming:
        st.subheader("Nächste Schicht")
        st.write(format_instant(upcoming.start))
    else:
        st.subheader("Du hast aktuell keine Schicht")


dashboard()

# Outside the fragment so the periodic rerun does not reset the inputs
current = running_shift(tracker.shifts)
if current:
    with st.form("finish_shift"):
        st.markdown("**Schicht beenden**")
        end_raw = st.text_input("Endzeit (YYYY-MM-DD HH:MM)", key="finish_end")
        pause_raw = st.text_input("Pause (Minuten)", value="0", key="finish_pause")
        c1, c2 = st.columns(2)
        finish_now = c1.form_submit_button("Jetzt beenden", type="primary", use_container_width=True)
        finish_at = c2.form_submit_button("Mit Endzeit beenden", use_container_width=True)
    if finish_now or finish_at:
        # clock read at submit time
        end_time = end_raw if finish_at else now_local()
        if run_action(lambda: tracker.finish(current.id, end_time, pause_raw), "Schicht beendet."):
            st.session_state["_reset_finish_form"] = True
            st.rerun()


# =========================
# Stats
# =========================
def stats_section(now: datetime):
    shifts = tracker.shifts
    ws, we = AGG.week_window(now)
    ms, me = AGG.month_window(now)
    avg = AGG.average_per_shift(shifts, now)
    c1, c2, c3 = st.columns(3)
    c1.metric("Diese Woche", format_minutes(AGG.total_minutes(shifts, ws, we, now)))
    c2.metric("Dieser Monat", format_minutes(AGG.total_minutes(shifts, ms, me, now)))
    c3.metric("Durchschnitt / Schicht", format_minutes(avg) if avg else "—")

    view = st.radio("Ansicht", ["Aktuelle Woche", "Aktueller Monat"], horizontal=True, label_visibility="collapsed")
    series = AGG.week_series(shifts, now, now) if view == "Aktuelle Woche" else AGG.month_series(shifts, now, now)
    chart = pd.DataFrame({"Tag": [pd.Timestamp(d.day) for d in series], "Minuten": [d.minutes for d in series]})
    st.bar_chart(chart, x="Tag", y="Minuten")

    weekly = AGG.weekly_totals(shifts, now)
    for (yy, ww) in sorted(weekly, reverse=True)[:6]:
        monday = datetime.fromisocalendar(yy, ww, 1).date()
        sunday = monday + timedelta(days=6)
        with st.expander(f"{monday.strftime('%d.%m.%Y')} – {sunday.strftime('%d.%m.%Y')} · {format_minutes(weekly[(yy, ww)])}"):
            for d in AGG.week_series(shifts, monday, now):
                if d.minutes:
                    st.markdown(f"- **{d.day.strftime('%a %d.%m.')}**: {format_minutes(d.minutes)}")


st.subheader("📊 Statistik")
stats_section(now_local())


# =========================
# New shift
# =========================
st.subheader("➕ Neue Schicht")
new_day = st.date_input("Datum", value=date.today())
st.session_state.setdefault("new_start_time", datetime.now().time().replace(second=0, microsecond=0))
new_time = st.time_input("Startzeit", key="new_start_time", step=300)
new_start = datetime.combine(new_day, new_time)

if new_start >= now_local() - timedelta(minutes=1):
    if st.button("Hinzufügen", use_container_width=True):
        if run_action(lambda: tracker.add_planned(new_start), f"Schicht geplant: {format_instant(new_start)}"):
            st.rerun()
else:
    st.caption("Startzeit liegt in der Vergangenheit: alte Schicht eintragen.")
    end_raw = st.text_input("Endzeit (YYYY-MM-DD HH:MM)", value=new_start.strftime("%Y-%m-%d %H:%M"), key="backdated_end")
    pause_raw = st.text_input("Pause (Minuten)", value="0", key="pause_backdated")
    if st.button("Alte Schicht speichern", use_container_width=True):
        if run_action(lambda: tracker.add_backdated(new_start, end_raw, pause_raw), "Schicht gespeichert."):
            st.rerun()


# =========================
# Week list (edit / delete)
# =========================
st.subheader("🗓️ Schichten verwalten")
week_offset = st.number_input("Woche (0 = aktuelle)", value=0, step=1)
week_begin, week_end = AGG.week_window(now_local() + timedelta(weeks=int(week_offset)))
st.caption(f"{week_begin.strftime('%d.%m.%Y')} – {(week_end - timedelta(days=1)).strftime('%d.%m.%Y')}")

week_shifts = [s for s in tracker.shifts if (b := effective_start(s)) is not None and week_begin <= b < week_end]
if not week_shifts:
    st.info("Keine Schichten in dieser Woche.")
else:
    st.dataframe(shifts_to_dataframe(week_shifts, now_local(), AGG).drop(columns=["ID"]),
                 use_container_width=True, hide_index=True)
    labels = {s.id: f"{format_instant(effective_start(s))} ({s.status.value})" for s in week_shifts}
    chosen = st.selectbox("Schicht", options=list(labels), format_func=labels.get)
    shift = next(s for s in week_shifts if s.id == chosen)
    with st.form(f"edit_{chosen}"):
        start_raw = st.text_input("Startzeit", value=format_instant(effective_start(shift), FORM_FORMAT), key=f"edit_start_{chosen}")
        end_raw = st.text_input("Endzeit", value=format_instant(shift.end, FORM_FORMAT), key=f"edit_end_{chosen}")
        pause_raw = st.text_input("Pause (Minuten)", value=str(shift.pause_minutes), key=f"edit_pause_{chosen}")
        c1, c2 = st.columns(2)
        save = c1.form_submit_button("Bearbeiten", use_container_width=True)
        delete = c2.form_submit_button("Löschen", use_container_width=True)
    if save:
        patch = edit_patch(shift, start_raw, end_raw, pause_raw)
        if run_action(lambda: tracker.edit(chosen, patch), "Schicht aktualisiert."):
            st.rerun()
    if delete:
        if run_action(lambda: tracker.remove(chosen), "Schicht gelöscht."):
            st.rerun()


# =========================
# Calendar (month grid)
# =========================
st.subheader("📅 Kalender")
month_offset = st.number_input("Monat (0 = aktueller)", value=0, step=1)
today = date.today()
y, m = divmod(today.year * 12 + today.month - 1 + int(month_offset), 12)
month_day = date(y, m + 1, 1)
st.caption(f"{month_title(month_day)} · 🟢 nächste · 🟡 kommende · ⚪ vergangene Schicht")

now = now_local()
upcoming = next_shift(tracker.shifts, now)
days = AGG.month_days(month_day)
lead = (days[0].weekday() - config.WEEK_START) % 7
cells = [""] * lead
for d in days:
    marks = "".join(MARKERS[day_marker(s, now, upcoming)] for s in shifts_for_day(tracker.shifts, d))
    cells.append(f"{d.day} {marks}".strip())
cells += [""] * (-len(cells) % 7)
grid = pd.DataFrame([cells[i:i + 7] for i in range(0, len(cells), 7)],
                    columns=WEEKDAYS[config.WEEK_START:] + WEEKDAYS[:config.WEEK_START])
st.dataframe(grid, use_container_width=True, hide_index=True)


# =========================
# ⬇️ PDF of the shown month
# =========================
pdf_bytes = month_report_pdf(tracker.shifts, month_day, now, title=config.APP_TITLE, aggregator=AGG)
st.download_button(
    f"PDF {month_title(month_day)} herunterladen",
    data=pdf_bytes,
    file_name=f"schichten_{month_day:%Y-%m}.pdf",
    mime="application/pdf",
    use_container_width=True,
)

finished = sum(1 for s in tracker.shifts if s.status is ShiftStatus.FINISHED)
st.caption(f"{len(tracker.shifts)} Schichten · {finished} beendet")
