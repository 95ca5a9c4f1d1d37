# schedule_health/Menu.py
#
#   streamlit run src/schedule_health/Menu.py

import streamlit as st

from schedule_health.p6.loader import parse_schedule
from schedule_health.p6.xer_reader import FormatError
from schedule_health.utils.logger import configure_logging
from schedule_health.validation.schedule_validator import validate_upload

configure_logging()

st.set_page_config(page_title="Schedule Health", layout="wide")

st.title("🚀 Schedule Health")

st.markdown("""
Upload your P6 schedule here once; all pages will use it automatically.
Add a baseline to unlock CPLI, BEI, comparison and variance.
""")

# Initialize session storage
for key in ["schedule", "schedule_name", "baseline", "baseline_name"]:
    if key not in st.session_state:
        st.session_state[key] = None


def load_into_session(uploaded, slot):
    issues = validate_upload(uploaded.name, uploaded.size)
    if issues:
        for issue in issues:
            st.error(f"{issue['Description']} {issue['SuggestedFix']}")
        return

    progress = st.progress(0, text=f"Reading {uploaded.name}…")
    try:
        snapshot = parse_schedule(
            uploaded.getvalue(),
            uploaded.name,
            on_progress=lambda pct: progress.progress(min(int(pct), 100)),
        )
    except FormatError as e:
        progress.empty()
        st.error(f"Error loading schedule: {e}")
        return

    progress.empty()
    st.session_state[slot] = snapshot
    st.session_state[f"{slot}_name"] = uploaded.name
    st.success(f"{slot.title()} '{uploaded.name}' loaded: {len(snapshot.tasks)} activities.")


col1, col2 = st.columns(2)

with col1:
    uploaded = st.file_uploader("Current schedule", type=["xer", "xml"], key="current_upload")
    if uploaded and uploaded.name != st.session_state["schedule_name"]:
        load_into_session(uploaded, "schedule")

with col2:
    uploaded_bl = st.file_uploader("Baseline schedule (optional)", type=["xer", "xml"], key="baseline_upload")
    if uploaded_bl and uploaded_bl.name != st.session_state["baseline_name"]:
        load_into_session(uploaded_bl, "baseline")

st.divider()

snapshot = st.session_state["schedule"]
if snapshot is None:
    st.info("Upload a .xer or .xml export to begin.")
    st.stop()

data_date, source = snapshot.resolve_data_date()
c1, c2, c3, c4 = st.columns(4)
c1.metric("Activities", len(snapshot.tasks))
c2.metric("Relationships", len(snapshot.relationships))
c3.metric("Resource assignments", len(snapshot.resources))
c4.metric("Data date", data_date.strftime("%d %b %Y"))

if source == "clock":
    st.warning("The file carries no data date; analysis uses today's date instead.")

if st.session_state["baseline"] is not None:
    st.caption(f"Baseline: {st.session_state['baseline_name']}")
