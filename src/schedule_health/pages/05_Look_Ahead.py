# schedule_health/pages/05_Look_Ahead.py

import pandas as pd
import streamlit as st

from schedule_health.analysis.variance_engine import look_ahead
from schedule_health.config.settings import settings

st.set_page_config(page_title="Look-Ahead", layout="wide")

st.title("🔭 Look-Ahead")

snapshot = st.session_state.get("schedule")
baseline = st.session_state.get("baseline")

if snapshot is None:
    st.warning("No schedule loaded. Upload one on the Menu page first.")
    st.stop()

window = st.sidebar.slider("Window (days)", 7, 90, settings.LOOKAHEAD_DAYS, step=7)
anchor = st.sidebar.date_input("From", value=pd.Timestamp.today().date())

result = look_ahead(snapshot, baseline, window_days=window, anchor=pd.Timestamp(anchor), through_end_of_day=True)
summary = result.summary

c1, c2, c3, c4 = st.columns(4)
c1.metric("Activities", summary["total"])
c2.metric("Starting", summary["starting"])
c3.metric("Finishing", summary["finishing"])
c4.metric("Critical", summary["critical"])

if baseline is not None:
    c5, c6 = st.columns(2)
    c5.metric("Mean start variance (days)", summary["meanStartVarianceDays"])
    c6.metric("Mean finish variance (days)", summary["meanFinishVarianceDays"])
    st.caption(f"Averages over {summary['matched']} activities matched to the baseline.")

st.dataframe(result.activities, use_container_width=True)
