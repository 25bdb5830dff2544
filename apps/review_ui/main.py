# apps/review_ui/main.py
import streamlit as st

# --- 1. Page Config ---
st.set_page_config(layout="wide", page_title="Caption Review Console")

# Clean Architecture Imports
from apps.review_ui.adapters import ImageLoader, build_controller, run
from apps.review_ui import views
from apps.common.log_utils import setup_logging
from apps.common.settings import load_settings
from services.review.domain import CAPTION_TYPES, Judgment, LoadState
from services.review.errors import LedgerWriteError, ValidationError

SETTINGS = load_settings()
setup_logging(SETTINGS.log_file)

JUDGMENT_OPTIONS = [Judgment.NONE, Judgment.ACCEPTED, Judgment.REJECTED]


# --- Helper Functions ---
def get_controller():
    if "controller" not in st.session_state:
        st.session_state.controller = build_controller(SETTINGS)
    return st.session_state.controller


def on_dataset_change():
    try:
        run(get_controller().select_dataset(st.session_state.dataset_choice))
    except ValidationError as e:
        st.session_state.flash_error = e.describe()


def on_reviewer_change():
    try:
        get_controller().select_reviewer(st.session_state.reviewer_choice)
    except ValidationError as e:
        st.session_state.flash_error = e.describe()


def next_record():
    run(get_controller().advance())


def prev_record():
    run(get_controller().retreat())


# --- Main App ---
controller = get_controller()
if controller.active_dataset is None:
    run(controller.select_dataset(controller.config.default_dataset))

st.title("🖼️ Caption Review Console")

# Sidebar
st.sidebar.header("Controls")
st.sidebar.radio(
    "Dataset",
    SETTINGS.dataset_names,
    index=SETTINGS.dataset_names.index(controller.active_dataset),
    format_func=SETTINGS.dataset_label,
    key="dataset_choice",
    on_change=on_dataset_change,
)
roster = [""] + list(SETTINGS.reviewers)
st.sidebar.selectbox(
    "Reviewer",
    roster,
    index=roster.index(controller.selected_reviewer) if controller.selected_reviewer in roster else 0,
    format_func=lambda r: r or "— select —",
    key="reviewer_choice",
    on_change=on_reviewer_change,
)

if st.sidebar.button("🔄 Reload Record"):
    run(controller.load_current())

snap = controller.snapshot()
st.sidebar.markdown(f"**Record:** {views.progress_label(snap.position, snap.total)}")
if snap.record_key:
    st.sidebar.caption(snap.record_key)

flash = st.session_state.pop("flash_error", None)
if flash:
    st.error(flash)

if snap.error is not None:
    st.error(snap.error.describe())

if snap.load_state == LoadState.IDLE and not snap.total:
    st.info("No records in this dataset.")
    st.stop()

col_prev, col_next, _ = st.columns([1, 1, 6])
with col_prev:
    st.button("⬅️ Previous", on_click=prev_record, disabled=not snap.has_prev)
with col_next:
    st.button("Next ➡️", on_click=next_record, disabled=not snap.has_next)

record = snap.record
if record is None:
    st.stop()

# --- Workspace Layout ---
col_img, col_data = st.columns([1, 1])

with col_img:
    st.subheader("Image")
    loader = ImageLoader(SETTINGS, controller.repository)
    try:
        img = loader.load(record.image_filename)
    except Exception as e:
        st.error(f"Failed to load image: {e}")
        img = None
    if img:
        st.image(img, caption=record.image_filename, width="stretch")
    else:
        st.warning("No Image Data")

with col_data:
    content = record.content
    details = views.image_details(content)
    if details:
        st.subheader("Image Details")
        st.markdown(f"**ID:** {details['id']}  \n**Labels:** {details['labels']}")

    captions = views.florence_captions(content)
    if captions:
        st.subheader("Captions")
        for c in captions:
            st.markdown(f"**{c['title']}:** {c['text']}")

    privacy = views.privacy_reasoning(content)
    if privacy:
        st.subheader("Privacy Reasoning")
        if privacy["anchor"]:
            a = privacy["anchor"]
            st.markdown(f"**Anchor:** {a['label']} · risk {a['risk_score']} ({a['tier']})")
        for p in privacy["piis"]:
            st.markdown(f"`{p['tier']}` **{p['w']}:** {p['label']} ({p['value']})")

    generated = views.generated_captions(content)
    if generated:
        st.subheader("Generated Captions")
        st.caption(f"Model: {generated['model']}")
        for name in CAPTION_TYPES:
            st.markdown(f"**{views.CAPTION_TITLES[name]}**")
            st.info(generated["captions"][name] or "—")

    selection = views.selection_details(content)
    if selection:
        st.subheader("Selected Persona Details")
        st.markdown(f"**Reasoning:** {selection['reason']}  \n**Score:** {selection['score']}")

# --- Vote Form ---
st.divider()
ui = snap.ui_state
if not snap.reviewer:
    st.info("Select a reviewer in the sidebar to vote.")
elif ui.locked:
    st.success(f"{snap.reviewer} already voted on this record.")

with st.form(key=f"vote_{snap.dataset}_{record.key}_{snap.reviewer}"):
    cols = st.columns(len(CAPTION_TYPES))
    chosen = {}
    for col, name in zip(cols, CAPTION_TYPES):
        with col:
            current = getattr(ui.judgments, name)
            chosen[name] = st.radio(
                views.CAPTION_TITLES[name],
                JUDGMENT_OPTIONS,
                index=JUDGMENT_OPTIONS.index(current),
                format_func=views.JUDGMENT_LABELS.get,
                horizontal=True,
                disabled=ui.locked,
            )
    comment = st.text_area("Comments", value=ui.comment, height=100, disabled=ui.locked)

    submitted = st.form_submit_button(
        "💾 Submit Vote",
        type="primary",
        disabled=ui.locked or not snap.reviewer,
    )

    if submitted:
        try:
            entry = run(controller.submit_vote(snap.reviewer, chosen, comment))
        except (ValidationError, LedgerWriteError) as e:
            st.error(e.describe())
        else:
            st.toast(f"Vote saved for {entry.record_key}", icon="✅")
            st.rerun()
