# schedule_health/pages/06_Narrative_Report.py

import streamlit as st

from schedule_health.analysis.chart_engine import build_chart_data
from schedule_health.analysis.figures import directive_figure
from schedule_health.analysis.variance_engine import variance_summary
from schedule_health.config.settings import settings
from schedule_health.narrative.client import NarrativeClient, NarrativeError
from schedule_health.narrative.prompt import (
    build_narrative_prompt,
    build_project_summary,
    extract_chart_directive,
)

st.set_page_config(page_title="Narrative Report", layout="wide")

st.title("📝 Narrative Report")

snapshot = st.session_state.get("schedule")
baseline = st.session_state.get("baseline")

if snapshot is None:
    st.warning("No schedule loaded. Upload one on the Menu page first.")
    st.stop()

missing = settings.validate_required_settings()
if missing:
    st.info(f"Narrative service not configured. Missing: {', '.join(missing)}")
    st.stop()

data_date, _ = snapshot.resolve_data_date()
variance = variance_summary(snapshot, baseline) if baseline is not None else None
summary = build_project_summary(snapshot, variance, as_of=data_date)

with st.expander("Prompt statistics"):
    st.json(summary)

if st.button("Generate narrative"):
    client = NarrativeClient.from_settings(settings)
    with st.spinner("Generating…"):
        try:
            reply = client.send_message([{"role": "user", "content": build_narrative_prompt(summary)}])
        except NarrativeError as e:
            st.error(f"Unable to generate project narrative: {e}")
            st.stop()
    st.session_state["narrative"] = reply

reply = st.session_state.get("narrative")
if reply:
    directive, text = extract_chart_directive(reply)
    st.markdown(text)
    if directive is not None:
        series = build_chart_data(snapshot.tasks, as_of=data_date)[directive.data_key]
        st.plotly_chart(directive_figure(directive.chart_type, series), use_container_width=True)
