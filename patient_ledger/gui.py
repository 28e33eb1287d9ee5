import html
import json
import time
import textwrap
import streamlit as st
import os
import sys
sys.path.append(os.path.dirname(__file__))
st.set_page_config(page_title="Patient Blockchain", layout="wide")

try:
    from .config import DEFAULT_DIFFICULTY, GENDERS, BLOOD_TYPES, MAX_AGE, STORAGE_FILE
    from .records import build_patient_record
    from .storage import JsonFileStore, load_blockchain, save_blockchain
    from .validation import ValidationError, validate_chain_integrity
    from .views import format_timestamp
except ImportError:
    from config import DEFAULT_DIFFICULTY, GENDERS, BLOOD_TYPES, MAX_AGE, STORAGE_FILE
    from records import build_patient_record
    from storage import JsonFileStore, load_blockchain, save_blockchain
    from validation import ValidationError, validate_chain_integrity
    from views import format_timestamp


def init_app_state():
    if "bc" not in st.session_state:
        store = JsonFileStore(STORAGE_FILE)
        st.session_state.store = store
        st.session_state.bc = load_blockchain(store, difficulty=DEFAULT_DIFFICULTY)


def esc(value) -> str:
    """Escape stored values before they go into raw HTML."""
    return html.escape(str(value))


def persist():
    save_blockchain(st.session_state.store, st.session_state.bc)


def app_header():
    accent = "#667eea"
    st.markdown(textwrap.dedent(f"""
        <style>
        .app-header {{ text-align: center; padding: 12px 0 4px 0; }}
        .app-header h2 {{ color: {accent}; margin-bottom: 0; }}
        .block-card {{ border: 1px solid #e8ecf3; border-radius: 10px; padding: 14px; margin-bottom: 6px; }}
        .block-card h4 {{ color: {accent}; margin: 0 0 8px 0; }}
        .kv {{ font-family: monospace; font-size: 0.85rem; word-break: break-all; }}
        .connector {{ width: 2px; height: 18px; background: {accent}; margin: 0 auto 6px auto; }}
        </style>
    """), unsafe_allow_html=True)
    st.markdown(
        '<div class="app-header"><h2>🏥 Patient Blockchain System</h2>'
        '<p>Secure & Transparent Patient Information Management</p></div>',
        unsafe_allow_html=True,
    )


def add_patient_page():
    bc = st.session_state.bc
    st.subheader("Add New Patient Record")
    with st.form("patient_form", clear_on_submit=True):
        c1, c2 = st.columns(2)
        with c1:
            pid = st.text_input("Patient ID *", placeholder="P001")
            age = st.number_input("Age *", min_value=0, max_value=MAX_AGE, value=None, step=1)
            blood_type = st.selectbox("Blood Type *", BLOOD_TYPES, index=None, placeholder="Select Blood Type")
        with c2:
            name = st.text_input("Full Name *", placeholder="John Doe")
            gender = st.selectbox("Gender *", GENDERS, index=None, placeholder="Select Gender")
            doctor = st.text_input("Doctor Name *", placeholder="Dr. Smith")
        diagnosis = st.text_area("Diagnosis *", placeholder="Enter patient diagnosis")
        treatment = st.text_area("Treatment Plan *", placeholder="Enter treatment plan")
        submitted = st.form_submit_button("💾 Add to Blockchain")

    if not submitted:
        return

    record = build_patient_record({
        "id": pid,
        "name": name,
        "age": int(age) if age is not None else None,
        "gender": gender,
        "bloodType": blood_type,
        "diagnosis": diagnosis,
        "treatment": treatment,
        "doctor": doctor,
    })

    status = st.empty()

    def progress(nonce):
        status.caption(f"Mining... tried {nonce} nonces")

    try:
        with st.spinner("Mining Block"):
            started = time.time()
            blk = bc.add_block(record, on_progress=progress)
    except ValidationError as e:
        status.empty()
        st.error(f"Please fill in all fields correctly: {e.message}")
        return

    status.empty()
    persist()
    st.success(
        f"Patient {record['name']} added to blockchain successfully! "
        f"Block #{blk.index}, nonce {blk.nonce}, {time.time() - started:.2f}s"
    )


def stats_row(bc):
    stats = bc.stats()
    c1, c2, c3 = st.columns(3)
    with c1: st.metric("Total Blocks", stats["total_blocks"])
    with c2: st.metric("Patient Records", stats["total_patients"])
    with c3: st.metric("Chain", "✓ Valid" if stats["chain_valid"] else "✗ Invalid")


def chain_page():
    bc = st.session_state.bc
    stats_row(bc)

    ok, msg = validate_chain_integrity(bc)
    if not ok:
        st.error(msg)

    show_full = st.checkbox("Show full hashes", value=False)

    def fmt(s: str) -> str:
        if show_full or not s:
            return s
        return (s[:10] + "…" + s[-6:]) if len(s) > 18 else s

    parts = []
    for i, blk in enumerate(bc.chain):
        title = "🌟 Genesis Block" if blk.index == 0 else f"Block #{blk.index}"
        d = blk.data
        patient = "" if blk.index == 0 else textwrap.dedent(f"""
            <div class='kv'>patient: {esc(d.get("name", ""))} ({esc(d.get("id", ""))}) | age {esc(d.get("age", ""))} | {esc(d.get("gender", ""))} | {esc(d.get("bloodType", ""))}</div>
            <div class='kv'>doctor: {esc(d.get("doctor", ""))}</div>
            <div class='kv'>diagnosis: {esc(d.get("diagnosis", ""))}</div>
            <div class='kv'>treatment: {esc(d.get("treatment", ""))}</div>
        """)
        node = textwrap.dedent(f"""
        <div class='block-card'>
            <h4>{esc(title)}</h4>
            <div class='kv'>time: {format_timestamp(blk.timestamp)}</div>
            {patient}
            <div class='kv'>hash: {esc(fmt(blk.hash))}</div>
            <div class='kv'>prev: {esc(fmt(blk.previous_hash))}</div>
            <div class='kv'>nonce: {esc(blk.nonce)}</div>
        </div>
        """)
        parts.append(node)
        if i < len(bc.chain) - 1:
            parts.append("<div class='connector'></div>")
    st.markdown("".join(parts), unsafe_allow_html=True)

    st.download_button(
        "Download Chain (JSON)",
        data=bc.to_json(indent=2).encode("utf-8"),
        file_name=f"patient_blockchain_{int(time.time())}.json",
        mime="application/json",
    )


def patients_page():
    bc = st.session_state.bc
    patients = bc.get_all_patients()
    st.metric("Total Patients", len(patients))

    if not patients:
        st.info("📋 No patient records yet. Add your first patient to get started.")
        return

    for p in patients:
        with st.container(border=True):
            st.markdown(f"**{p.get('name', 'N/A')}** · `{p.get('id', 'N/A')}`")
            c1, c2, c3, c4 = st.columns(4)
            with c1: st.caption("Age"); st.write(f"{p.get('age', 'N/A')} years")
            with c2: st.caption("Gender"); st.write(p.get("gender", "N/A"))
            with c3: st.caption("Blood Type"); st.write(p.get("bloodType", "N/A"))
            with c4: st.caption("Doctor"); st.write(p.get("doctor", "N/A"))
            st.caption("Diagnosis"); st.write(p.get("diagnosis", "N/A"))
            st.caption("Treatment"); st.write(p.get("treatment", "N/A"))
            st.caption(f"Added: {format_timestamp(p.get('timestamp'))}")


def admin_sidebar():
    bc = st.session_state.bc
    st.sidebar.subheader("Admin")
    st.sidebar.write(f"Difficulty: {bc.difficulty}")
    if st.sidebar.button("Reset Blockchain"):
        bc.reset()
        persist()
        st.sidebar.success("Blockchain reset to a new genesis block")
    with st.sidebar.expander("Access Logs"):
        for e in reversed(bc.access_logs[-50:]):
            st.code(json.dumps(e, indent=2), language="json")


def main():
    init_app_state()
    app_header()
    admin_sidebar()
    t1, t2, t3 = st.tabs(["➕ Add Patient", "🔗 View Blockchain", "👥 All Patients"])
    with t1:
        add_patient_page()
    with t2:
        chain_page()
    with t3:
        patients_page()


if __name__ == "__main__":
    main()
