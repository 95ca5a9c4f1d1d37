# schedule_health/pages/03_Progress_Charts.py

import streamlit as st

from schedule_health.analysis.chart_engine import build_chart_data, build_timeline
from schedule_health.analysis.figures import distribution_figure, timeline_figure

st.set_page_config(page_title="Progress Charts", layout="wide")

st.title("📈 Progress Charts")

snapshot = st.session_state.get("schedule")
baseline = st.session_state.get("baseline")

if snapshot is None:
    st.warning("No schedule loaded. Upload one on the Menu page first.")
    st.stop()

data_date, _ = snapshot.resolve_data_date()
charts = build_chart_data(snapshot.tasks, as_of=data_date)

series = [charts["timeline"]]
if baseline is not None:
    series.append(build_timeline(baseline.tasks, is_baseline=True))

st.plotly_chart(timeline_figure(series), use_container_width=True)

col1, col2 = st.columns(2)
with col1:
    st.plotly_chart(distribution_figure(charts["progress"], kind="pie"), use_container_width=True)
with col2:
    st.plotly_chart(distribution_figure(charts["taskTypes"], kind="bar"), use_container_width=True)

timeline = charts["timeline"]
if not timeline.is_empty:
    month = st.selectbox("Activities finishing in", timeline.labels)
    st.dataframe(timeline.activities[timeline.labels.index(month)], use_container_width=True)
