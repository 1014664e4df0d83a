"""
QBot AI - Quality Inspection Dashboard

Pages:
- Dashboard: KPIs, quality trend, recent alerts, equipment status
- Inspection: upload an image, run AI defect detection, save the result
- Analysis: defect type / severity distributions and quality trends
- Reports: LLM-generated period reports
- Predictions: risk level, risk trend and recommended actions
- History: searchable inspection records with CSV export
- Settings: operator profile and system information
"""

import sys
import logging
from pathlib import Path

import streamlit as st

# Page config - must be first
st.set_page_config(
    page_title="QBot AI - Quality Inspection",
    layout="wide",
    initial_sidebar_state="expanded",
)

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from qbot.config import config
from qbot import analytics
from qbot.errors import InspectionValidationError
from qbot.backend.store import BackendError, BackendConfigurationError, get_store
from qbot.backend.entities import REPORT_TYPES, humanize
from qbot.inspection import InspectionForm, run_analysis, save_inspection
from qbot.vision.image_upload import ACCEPTED_EXTENSIONS, upload_image
from qbot.vision.llm_defect_detector import is_detector_available
from qbot.reports.report_generator import generate_report, is_generator_available
from qbot.visualization.charts import (
    quality_trend_chart,
    defect_type_chart,
    severity_pie_chart,
    quality_bar_chart,
    risk_trend_chart,
)

logging.basicConfig(
    level=config["logging"]["level"],
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("qbot.app")

# ============ THEME ============
st.markdown("""
<style>
    .stApp {
        background: linear-gradient(135deg, #f8fafc 0%, #eff6ff 50%, #f8fafc 100%) !important;
    }

    #MainMenu, footer, .stDeployButton {display: none !important;}

    [data-testid="stSidebar"] {
        background: rgba(255, 255, 255, 0.85) !important;
        border-right: 1px solid #e2e8f0 !important;
    }

    h1, h2, h3, h4 {
        color: #0f172a !important;
        font-weight: 700 !important;
    }

    [data-testid="stMetric"] {
        background: #FFFFFF;
        border-radius: 12px;
        padding: 16px 20px;
        box-shadow: 0 4px 12px rgba(15, 23, 42, 0.06);
    }

    .stButton > button[kind="primary"] {
        background: #0f172a !important;
        border: none !important;
    }

    .severity-badge {
        padding: 2px 10px;
        border-radius: 9999px;
        font-size: 12px;
        font-weight: 600;
    }
    .severity-critical { background: #fee2e2; color: #991b1b; }
    .severity-major { background: #ffedd5; color: #9a3412; }
    .severity-minor { background: #fef9c3; color: #854d0e; }

    .status-operational { color: #166534; }
    .status-maintenance { color: #854d0e; }
    .status-offline { color: #374151; }
    .status-error { color: #991b1b; }
</style>
""", unsafe_allow_html=True)


PAGES = ["Dashboard", "Inspection", "Analysis", "Reports", "Predictions", "History", "Settings"]

BAND_ICONS = {"green": "🟢", "yellow": "🟡", "red": "🔴"}


# ============ SESSION STATE ============
def init_state():
    defaults = {
        "page": "Dashboard",
        "image_url": None,
        "analysis": None,
        "inspection_error": None,
        "form_version": 0,
        "uploader_version": 0,
        "dismissed_alerts": set(),
        "selected_report": None,
        "flash": None,
    }
    for k, v in defaults.items():
        if k not in st.session_state:
            st.session_state[k] = v

init_state()


# ============ DATA ACCESS ============
@st.cache_data(ttl=60, show_spinner=False)
def fetch_entities(entity: str, limit=None, sort: str = "-created_date"):
    return get_store().list(entity, sort=sort, limit=limit)


@st.cache_data(ttl=300, show_spinner=False)
def fetch_user():
    return get_store().me()


def invalidate(*_entities):
    """Drop cached listings after a write so every page re-fetches."""
    fetch_entities.clear()


def load(entity: str, limit=None):
    """Fetch a listing, showing an inline error instead of crashing the page."""
    try:
        return fetch_entities(entity, limit)
    except (BackendError, BackendConfigurationError) as e:
        logger.error("Failed to load %s: %s", entity, e)
        st.error(f"Could not load {entity.lower()} data: {e}")
        return []


def show_flash():
    if st.session_state.flash:
        st.success(st.session_state.flash)
        st.session_state.flash = None


def page_header(title: str, subtitle: str):
    st.title(title)
    st.caption(subtitle)


def severity_badge(severity: str) -> str:
    return f"<span class='severity-badge severity-{severity}'>{severity}</span>"


# ============ HELPER FUNCTIONS ============
def clear_inspection():
    st.session_state.image_url = None
    st.session_state.analysis = None
    st.session_state.inspection_error = None
    # Bumping the version gives the form widgets fresh keys, which empties them
    st.session_state.form_version += 1


def handle_upload(uploaded_file):
    try:
        st.session_state.image_url = upload_image(
            uploaded_file.getvalue(),
            uploaded_file.name,
            uploaded_file.type,
        )
        st.session_state.analysis = None
        st.session_state.inspection_error = None
    except InspectionValidationError as e:
        st.session_state.inspection_error = str(e)
        # New uploader key so the rejected file is not resubmitted on rerun
        st.session_state.uploader_version += 1


def handle_analyze():
    st.session_state.inspection_error = None
    try:
        analysis = run_analysis(st.session_state.image_url)
    except InspectionValidationError as e:
        st.session_state.inspection_error = str(e)
        return
    if analysis.ok:
        st.session_state.analysis = analysis
    else:
        st.session_state.inspection_error = analysis.error


def handle_save(form: InspectionForm):
    st.session_state.inspection_error = None
    try:
        save_inspection(form, st.session_state.image_url, st.session_state.analysis)
    except InspectionValidationError as e:
        st.session_state.inspection_error = str(e)
        return
    except BackendError as e:
        st.session_state.inspection_error = f"Failed to save inspection: {e}"
        return
    invalidate("Inspection", "Defect")
    clear_inspection()
    st.session_state.flash = "Inspection saved successfully!"


# ============ PAGES ============
def render_dashboard():
    limit = config["dashboard"]["recent_limit"]
    with st.spinner("Loading dashboard..."):
        inspections = load("Inspection", limit)
        defects = load("Defect", limit)
        equipment = load("Equipment")

    page_header("Quality Dashboard", "Real-time manufacturing quality monitoring and insights")

    metrics = analytics.dashboard_metrics(inspections, defects, equipment)
    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Total Inspections", metrics.total_inspections, help="Most recent inspections")
    c2.metric("Quality Score", f"{metrics.average_quality_score:.1f}%", help="Average score")
    c3.metric("Defects Detected", metrics.total_defects, help="Requires attention")
    c4.metric("Active Equipment", metrics.equipment_label, help="Operational status")

    col_chart, col_alerts = st.columns([2, 1])
    with col_chart:
        with st.container(border=True):
            st.markdown("#### Quality Score Trend (24h)")
            chart_data = analytics.quality_chart_data(inspections)
            if chart_data:
                st.plotly_chart(quality_trend_chart(chart_data), use_container_width=True)
            else:
                st.caption("No inspections recorded yet.")

    with col_alerts:
        with st.container(border=True):
            alerts = [
                a for a in analytics.build_alerts(defects)
                if a.id not in st.session_state.dismissed_alerts
            ]
            st.markdown(f"#### Recent Alerts ({len(alerts)})")
            if not alerts:
                st.success("All clear! No active alerts at this time.")
            for alert in alerts:
                col_text, col_close = st.columns([0.85, 0.15])
                with col_text:
                    st.markdown(
                        f"**{alert.title}** {severity_badge(alert.severity)}",
                        unsafe_allow_html=True,
                    )
                    st.caption(f"{alert.message}  \n{alert.time} • {alert.location}")
                with col_close:
                    if st.button("✕", key=f"dismiss_{alert.id}"):
                        st.session_state.dismissed_alerts.add(alert.id)
                        st.rerun()

    with st.container(border=True):
        st.markdown("#### Equipment Status")
        rows = analytics.equipment_status_rows(equipment)
        if not rows:
            st.caption("No equipment registered.")
        for row in rows:
            c_name, c_status, c_uptime, c_count = st.columns([3, 2, 2, 2])
            c_name.markdown(f"**{row['name']}**  \n{row['location']}")
            c_status.markdown(
                f"<span class='status-{row['status']}'>● {row['status']}</span>",
                unsafe_allow_html=True,
            )
            c_uptime.caption(f"Uptime: {row['uptime']}%")
            c_count.caption(f"Inspections: {row['inspections']}")


def render_inspection():
    page_header("Quality Inspection", "Upload and analyze product images for defect detection")
    show_flash()

    if st.session_state.inspection_error:
        st.error(st.session_state.inspection_error)

    if not is_detector_available():
        st.warning("Vision model not configured. Set OPENAI_API_KEY to enable analysis.")

    version = st.session_state.form_version
    with st.container(border=True):
        st.markdown("#### Inspection Details")
        c1, c2, c3, c4 = st.columns(4)
        form = InspectionForm(
            batch_number=c1.text_input("Batch Number", placeholder="e.g., B-2024-001", key=f"batch_{version}"),
            equipment_id=c2.text_input("Equipment ID", placeholder="e.g., LINE-A1", key=f"equipment_{version}"),
            station=c3.text_input("Station", placeholder="e.g., Final QC", key=f"station_{version}"),
            operator=c4.text_input("Operator", placeholder="e.g., John Doe", key=f"operator_{version}"),
        )

    with st.container(border=True):
        if not st.session_state.image_url:
            st.markdown("#### Upload Inspection Image")
            st.caption("Supported formats: PNG, JPEG, WEBP, GIF (max 20MB)")
            uploaded = st.file_uploader(
                "Select Image",
                type=ACCEPTED_EXTENSIONS,
                key=f"uploader_{version}_{st.session_state.uploader_version}",
            )
            if uploaded is not None:
                with st.spinner("Uploading..."):
                    handle_upload(uploaded)
                st.rerun()
        else:
            st.image(st.session_state.image_url, use_container_width=True)
            if st.button("✕ Clear", key="clear_image"):
                clear_inspection()
                st.rerun()

    if st.session_state.image_url:
        col_analyze, col_save = st.columns(2)
        with col_analyze:
            if st.button("▶ Analyze Image", type="primary", use_container_width=True):
                with st.spinner("Analyzing..."):
                    handle_analyze()
                st.rerun()
        with col_save:
            if st.session_state.analysis is not None:
                if st.button("💾 Save Inspection", use_container_width=True):
                    with st.spinner("Saving..."):
                        handle_save(form)
                    st.rerun()

    analysis = st.session_state.analysis
    if analysis is not None:
        render_detection_results(analysis)


def render_detection_results(analysis):
    with st.container(border=True):
        col_title, col_score = st.columns([3, 1])
        col_title.markdown("#### Detection Results")
        band = analytics.score_band(analysis.quality_score)
        col_score.markdown(f"**Quality: {analysis.quality_score:g}%** {BAND_ICONS[band]}")

        if not analysis.defects:
            st.success("No Defects Detected. Quality inspection passed successfully")
            return

        for defect in analysis.defects:
            with st.container(border=True):
                st.markdown(
                    f"**{defect.label}** {severity_badge(defect.severity)}",
                    unsafe_allow_html=True,
                )
                if defect.description:
                    st.write(defect.description)
                details = f"Confidence: {defect.confidence:g}%"
                if defect.root_cause:
                    details += f" | Root Cause: {defect.root_cause}"
                st.caption(details)
                if defect.corrective_action:
                    st.info(f"**Recommended Action:** {defect.corrective_action}")


def render_analysis():
    limit = config["dashboard"]["analysis_limit"]
    with st.spinner("Loading analysis..."):
        defects = load("Defect", limit)
        inspections = load("Inspection", limit)

    page_header("Defect Analysis", "Comprehensive quality metrics and trend analysis")

    c1, c2, c3 = st.columns(3)
    c1.metric("Total Defects", len(defects))
    c2.metric("Avg Confidence", f"{analytics.average_confidence(defects):.1f}%")
    c3.metric("Critical Defects", len(analytics.critical_defects(defects, limit=len(defects))))

    col_types, col_severity = st.columns(2)
    with col_types:
        with st.container(border=True):
            st.markdown("#### Defect Types Distribution")
            st.plotly_chart(defect_type_chart(analytics.defect_type_counts(defects)), use_container_width=True)
    with col_severity:
        with st.container(border=True):
            st.markdown("#### Severity Distribution")
            st.plotly_chart(severity_pie_chart(analytics.severity_counts(defects)), use_container_width=True)

    with st.container(border=True):
        st.markdown("#### Quality Score Trends")
        st.plotly_chart(quality_bar_chart(analytics.quality_trend(inspections)), use_container_width=True)

    with st.container(border=True):
        st.markdown("#### Recent Critical Defects")
        critical = analytics.critical_defects(defects)
        if not critical:
            st.caption("No critical defects recorded.")
        for defect in critical:
            with st.container(border=True):
                st.markdown(
                    f"**{humanize(defect.get('type')).upper()}** {severity_badge('critical')}",
                    unsafe_allow_html=True,
                )
                st.write(defect.get("description", ""))
                st.caption(
                    f"Confidence: {defect.get('confidence', 0)}% • "
                    f"{analytics.format_date(defect.get('created_date'))}"
                )


def render_reports():
    limit = config["dashboard"]["history_limit"]
    reports = load("Report")

    page_header("Quality Reports", "Generate and view comprehensive quality analysis reports")
    show_flash()

    col_form, col_list = st.columns([1, 2])
    with col_form:
        with st.container(border=True):
            st.markdown("#### Generate New Report")
            report_type = st.selectbox(
                "Report Type",
                REPORT_TYPES,
                format_func=lambda t: humanize(t).title(),
            )
            date_from = st.date_input("From Date", value=None)
            date_to = st.date_input("To Date", value=None)
            if not is_generator_available():
                st.caption("LLM not configured: a template report will be generated.")

            if st.button("Generate Report", type="primary", use_container_width=True):
                with st.spinner("Generating..."):
                    try:
                        report = generate_report(
                            report_type,
                            date_from.isoformat() if date_from else "",
                            date_to.isoformat() if date_to else "",
                            load("Inspection", limit),
                            load("Defect", limit),
                        )
                        get_store().create("Report", report.to_record())
                    except InspectionValidationError as e:
                        st.error(str(e))
                    except BackendError as e:
                        logger.error("Failed to save report: %s", e)
                        st.error("Failed to generate report. Please try again.")
                    else:
                        invalidate("Report")
                        st.session_state.flash = "Report generated successfully!"
                        st.rerun()

    with col_list:
        with st.container(border=True):
            st.markdown("#### Generated Reports")
            if not reports:
                st.info("No reports generated yet. Create your first report using the form.")
            for report in reports:
                summary = (report.get("summary") or "")[:100]
                with st.container(border=True):
                    st.markdown(f"**{report.get('title')}** `{humanize(report.get('type'))}`")
                    st.caption(f"{summary}...")
                    st.caption(
                        f"📅 {analytics.format_date(report.get('created_date'))} • "
                        f"{report.get('total_inspections', 0)} inspections • "
                        f"{report.get('total_defects', 0)} defects"
                    )
                    if st.button("View", key=f"view_{report.get('id')}"):
                        st.session_state.selected_report = report
                        st.rerun()

    selected = st.session_state.selected_report
    if selected:
        with st.container(border=True):
            col_title, col_export = st.columns([4, 1])
            col_title.markdown(f"### {selected.get('title')}")
            col_export.download_button(
                "Export",
                data=selected.get("content", ""),
                file_name=f"report_{selected.get('id')}.md",
                mime="text/markdown",
                use_container_width=True,
            )
            st.markdown(selected.get("content", ""))


def render_predictions():
    limit = config["dashboard"]["recent_limit"]
    inspections = load("Inspection", limit)
    defects = load("Defect", limit)

    page_header("Predictive Analytics", "AI-powered quality predictions and risk assessment")

    prediction = analytics.predict_risk(inspections, defects)
    c1, c2, c3, c4 = st.columns(4)
    with c1:
        with st.container(border=True):
            st.caption("Overall Risk Level")
            getattr(st, analytics.RISK_STYLES[prediction.risk_level])(prediction.risk_level.upper())
            st.caption("Based on recent quality trends")
    c2.metric("Defect Rate", f"{prediction.defect_rate:.1f}%", help="Defects per inspection")
    c3.metric(
        "Quality Trend",
        f"{prediction.recent_quality:.1f}%",
        delta=f"{prediction.trend_slope:+.2f}/inspection",
        help="Last 10 inspections avg",
    )
    c4.metric("Critical Rate", f"{prediction.critical_rate:.1f}%", help="Critical defects detected")

    with st.container(border=True):
        st.markdown("#### Risk & Quality Trend")
        st.plotly_chart(risk_trend_chart(prediction.trend), use_container_width=True)

    col_risks, col_actions = st.columns(2)
    with col_risks:
        with st.container(border=True):
            st.markdown("#### Upcoming Risks")
            for finding in prediction.findings:
                getattr(st, finding.level)(f"**{finding.title}**  \n{finding.message}")
    with col_actions:
        with st.container(border=True):
            st.markdown("#### Recommended Actions")
            for n, (title, detail) in enumerate(analytics.RECOMMENDED_ACTIONS, 1):
                st.markdown(f"**{n}. {title}**  \n{detail}")


def render_history():
    with st.spinner("Loading history..."):
        inspections = load("Inspection", config["dashboard"]["history_limit"])

    page_header("Inspection History", "View and analyze historical inspection records")

    with st.container(border=True):
        col_search, col_equipment, col_export = st.columns([3, 2, 1])
        search = col_search.text_input("Search", placeholder="Search by batch number or operator...")
        equipment = col_equipment.text_input("Equipment", placeholder="Filter by equipment...")
        filtered = analytics.filter_inspections(inspections, search, equipment)
        col_export.download_button(
            "Export",
            data=analytics.inspections_to_csv(filtered),
            file_name="inspections.csv",
            mime="text/csv",
            use_container_width=True,
        )

    st.caption(f"Showing {len(filtered)} of {len(inspections)} inspections")

    if not filtered:
        st.info("No inspections found matching your filters")
        return

    rows = [
        {
            "Date": analytics.parse_date(i.get("created_date")),
            "Batch Number": i.get("batch_number"),
            "Equipment": i.get("equipment_id"),
            "Quality Score": f"{BAND_ICONS[analytics.score_band(i.get('quality_score'))]} "
                             f"{i.get('quality_score') or 0:g}%",
            "Defects": i.get("defect_count") or 0,
            "Status": humanize(i.get("status")),
            "Operator": i.get("operator") or "-",
            "Image": i.get("image_url") or None,
        }
        for i in filtered
    ]
    st.dataframe(
        rows,
        use_container_width=True,
        hide_index=True,
        column_config={
            "Date": st.column_config.DatetimeColumn(format="YYYY-MM-DD HH:mm"),
            "Image": st.column_config.LinkColumn(display_text="📷"),
        },
    )


def render_settings():
    page_header("Settings", "Manage your account and application preferences")
    show_flash()

    try:
        user = fetch_user()
    except (BackendError, BackendConfigurationError) as e:
        st.error(f"Could not load profile: {e}")
        user = {}

    col_profile, col_actions = st.columns([2, 1])
    with col_profile:
        with st.container(border=True):
            st.markdown("#### Profile Information")
            full_name = st.text_input("Full Name", value=user.get("full_name", ""), placeholder="Enter your name")
            st.text_input("Email", value=user.get("email", ""), disabled=True, help="Email cannot be changed")
            st.text_input("Role", value=user.get("role", ""), disabled=True)
            if st.button("Save Changes", type="primary"):
                try:
                    get_store().update_me({"full_name": full_name})
                except BackendError as e:
                    logger.error("Profile update failed: %s", e)
                    st.error("Failed to update profile")
                else:
                    fetch_user.clear()
                    st.session_state.flash = "Profile updated successfully!"
                    st.rerun()

    with col_actions:
        with st.container(border=True):
            st.markdown("#### Quick Actions")
            if st.button("Refresh Data", use_container_width=True):
                invalidate()
                fetch_user.clear()
                st.rerun()
            if st.button("Sign Out", use_container_width=True):
                try:
                    get_store().logout()
                except BackendError as e:
                    st.error(f"Sign out failed: {e}")
                else:
                    fetch_user.clear()
                    st.session_state.flash = "Signed out."
                    st.rerun()

    with st.container(border=True):
        st.markdown("#### System Information")
        app_cfg = config["app"]
        c1, c2, c3 = st.columns(3)
        c1.metric("Version", app_cfg["version"])
        c2.metric("Last Update", app_cfg["last_update"])
        c3.metric("System Status", "Operational")


# ============ SIDEBAR (Navigation) ============
with st.sidebar:
    st.markdown(f"### 📷 {config['app']['title']}")
    st.caption(config["app"]["subtitle"])
    st.markdown("---")

    st.radio("Navigation", PAGES, key="page", label_visibility="collapsed")

    st.markdown("---")
    try:
        sidebar_user = fetch_user()
        st.caption(f"👤 {sidebar_user.get('full_name') or sidebar_user.get('email', '')}")
    except (BackendError, BackendConfigurationError):
        st.caption("👤 Not signed in")


# ============ MAIN LAYOUT ============
RENDERERS = {
    "Dashboard": render_dashboard,
    "Inspection": render_inspection,
    "Analysis": render_analysis,
    "Reports": render_reports,
    "Predictions": render_predictions,
    "History": render_history,
    "Settings": render_settings,
}

RENDERERS[st.session_state.page]()
