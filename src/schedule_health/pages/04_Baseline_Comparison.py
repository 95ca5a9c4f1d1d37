# schedule_health/pages/04_Baseline_Comparison.py

import streamlit as st

from schedule_health.analysis.variance_engine import (
    compare,
    delay_days,
    differences_to_frame,
    variance_summary,
)

st.set_page_config(page_title="Baseline Comparison", layout="wide")

st.title("🧭 Baseline Comparison")

snapshot = st.session_state.get("schedule")
baseline = st.session_state.get("baseline")

if snapshot is None or baseline is None:
    st.warning("Load both a current and a baseline schedule on the Menu page first.")
    st.stop()

try:
    diffs = compare(snapshot, baseline)
    summary = variance_summary(snapshot, baseline)
except Exception as e:
    st.error(f"Error comparing schedules: {e}")
    st.stop()

c1, c2, c3 = st.columns(3)
c1.metric("Activity count difference", summary.activity_count_difference)
c2.metric("Total delay (days)", summary.total_delay_days)
c3.metric("Critical path delay (days)", summary.critical_path_delay_days)

st.caption("Delay is counted only beyond each activity's current total float.")

table = differences_to_frame(diffs)
change_types = st.multiselect(
    "Change type", ["added", "removed", "modified"], default=["added", "removed", "modified"]
)
st.dataframe(table[table["Change Type"].isin(change_types)], use_container_width=True)

delays = delay_days(snapshot, baseline)
delayed = delays[delays["DelayDays"] > 0].sort_values("DelayDays", ascending=False)
if not delayed.empty:
    st.subheader("Delayed activities")
    st.dataframe(delayed, use_container_width=True)

st.download_button(
    "Download Comparison (CSV)",
    data=table.to_csv(index=False).encode("utf-8"),
    file_name="schedule_differences.csv",
    mime="text/csv",
)
