# schedule_health/pages/02_DCMA_Assessment.py

import streamlit as st

from schedule_health.analysis.dcma_engine import DcmaAnalyzer, summarize
from schedule_health.analysis.figures import metric_status_figure
from schedule_health.analysis.reporting import build_report, metrics_to_frame, report_to_json
from schedule_health.analysis.task_status import StatusPolicy

st.set_page_config(page_title="DCMA Assessment", layout="wide")

st.title("📋 DCMA 14-Point Assessment")

snapshot = st.session_state.get("schedule")
baseline = st.session_state.get("baseline")

if snapshot is None:
    st.warning("No schedule loaded. Upload one on the Menu page first.")
    st.stop()

policy = StatusPolicy(
    st.sidebar.radio(
        "Completion based on",
        [p.value for p in StatusPolicy],
        format_func=lambda v: "Actual progress" if v == "actual" else "Planned dates",
    )
)

try:
    analyzer = DcmaAnalyzer(snapshot, baseline, policy=policy)
    metrics = analyzer.analyze()
except Exception as e:
    st.error(f"Error running the assessment: {e}")
    st.stop()

if analyzer.data_date_source == "clock":
    st.warning("No data date in the file; checks are anchored to today's date.")

if baseline is None:
    st.info("Upload a baseline on the Menu page to calculate CPLI and BEI.")

# -------------------------------------------------------------------
# KPI strip
# -------------------------------------------------------------------
counts = summarize(metrics)
c1, c2, c3, c4 = st.columns(4)
c1.metric("Pass", counts["pass"])
c2.metric("Warn", counts["warn"])
c3.metric("Fail", counts["fail"])
c4.metric("Info", counts["info"])

table = metrics_to_frame(metrics)
st.plotly_chart(metric_status_figure(table), use_container_width=True)

# -------------------------------------------------------------------
# Results
# -------------------------------------------------------------------
ICONS = {"pass": "✅", "warn": "⚠️", "fail": "❌", "info": "ℹ️"}

for key, m in metrics.items():
    with st.expander(f"{ICONS.get(m.status, '')} {key}: {m.value} (target {m.threshold})"):
        st.write(m.description)
        if m.details:
            st.caption(m.details)
        if m.recommendation:
            st.markdown(f"**Recommendation:** {m.recommendation}")

st.divider()

st.download_button(
    "Download DCMA Results (CSV)",
    data=table.astype(str).to_csv(index=False).encode("utf-8"),
    file_name="dcma_metrics.csv",
    mime="text/csv",
)
st.download_button(
    "Download DCMA Results (JSON)",
    data=report_to_json(build_report(snapshot, metrics)).encode("utf-8"),
    file_name="dcma_report.json",
    mime="application/json",
)
