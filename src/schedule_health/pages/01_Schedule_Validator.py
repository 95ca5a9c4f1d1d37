# schedule_health/pages/01_Schedule_Validator.py

import streamlit as st

from schedule_health.validation.schedule_validator import validate_schedule

st.set_page_config(page_title="Schedule Validator", layout="wide")

st.title("🔍 Schedule Validator")
st.caption("Structural problems in the export that the DCMA checks do not cover.")

snapshot = st.session_state.get("schedule")
if snapshot is None:
    st.warning("No schedule loaded. Upload one on the Menu page first.")
    st.stop()

try:
    issues = validate_schedule(snapshot)
except Exception as e:
    st.error(f"Error while running validator: {e}")
    st.stop()

critical = issues[issues["Severity"] == "critical"]
errors = issues[issues["Severity"] == "error"]

col1, col2 = st.columns(2)
col1.metric("Critical Issues", len(critical))
col2.metric("Errors", len(errors))

st.divider()

st.subheader("❌ Critical Issues")
if critical.empty:
    st.success("No critical issues found.")
else:
    st.error("These issues make the analysis unreliable.")
    st.dataframe(critical, use_container_width=True)

st.subheader("⚠️ Errors")
if errors.empty:
    st.success("No errors.")
else:
    st.warning("These issues should be cleaned up in P6.")
    st.dataframe(errors, use_container_width=True)

st.divider()

st.download_button(
    "Download Validation Report (CSV)",
    data=issues.to_csv(index=False).encode("utf-8"),
    file_name="schedule_validation_results.csv",
    mime="text/csv",
)
