"""
Streamlit Frontend for the Birthday & Gelt Tracker

Two tools in one app:
- Birthdays: the family birthday list with Hebrew dates and the next
  Hebrew birthdays, plus prompts for anything that needs verifying
- Gelt: the gift-money calculator for a group of children

DESIGN PRINCIPLES:
1. Simple, clear interface
2. Explicit confirmation for destructive actions
3. Clear error messages in simple language
4. Visual feedback for all operations
5. No hidden actions
"""

import asyncio
from datetime import date
from decimal import Decimal

import streamlit as st

from src.audit import AuditLogger, create_correlation_id
from src.config import get_settings, validate_all_settings
from src.gelt import AgeGroupValidationError, GeltImportError, find_overlapping_groups
from src.models.birthday import (
    Birthday,
    BirthdayFilters,
    Gender,
    NewBirthday,
    SortField,
    SortOrder,
    Timeframe,
)
from src.orchestrator import (
    BirthdayFlow,
    BirthdayOperationError,
    GeltFlow,
    create_app_components,
    create_gelt_flow,
)


# Page configuration
st.set_page_config(
    page_title="Birthday & Gelt Tracker",
    page_icon="🎂",
    layout="wide",
    initial_sidebar_state="expanded",
)

# Custom CSS for better UX
st.markdown("""
<style>
    .stButton>button {
        width: 100%;
    }
    .warning-box {
        padding: 16px;
        background-color: #fff3cd;
        border-radius: 10px;
        border-left: 5px solid #ffc107;
        margin: 10px 0;
    }
</style>
""", unsafe_allow_html=True)


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_components():
    """Get or create application components (cached)."""
    try:
        return create_app_components(use_storage=True)
    except Exception as e:
        st.error(f"Failed to initialize: {e}")
        return create_app_components(use_storage=False)


def get_gelt_flow() -> GeltFlow:
    """One calculator per browser session."""
    if "gelt_flow" not in st.session_state:
        _, audit_logger, _ = get_components()
        st.session_state.gelt_flow = create_gelt_flow(audit_logger)
    return st.session_state.gelt_flow


def money(value: Decimal) -> str:
    currency = get_settings().gelt.currency_symbol
    return f"{currency}{value:,.0f}" if value == value.to_integral_value() else f"{currency}{value:,.2f}"


def main():
    """Main application entry point."""
    birthday_flow, audit_logger, sheets_client = get_components()

    # Sidebar navigation
    st.sidebar.title("🎂 Birthday & Gelt Tracker")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        ["🎂 Birthdays", "➕ Add Birthday", "🗄️ Archive", "💰 Gelt Calculator", "⚙️ Settings"],
        index=0,
    )

    if sheets_client is None:
        st.sidebar.warning("Google Sheets is not configured. Changes are kept in memory only.")

    # Route to appropriate page
    if page == "🎂 Birthdays":
        render_birthdays_page(birthday_flow)
    elif page == "➕ Add Birthday":
        render_add_page(birthday_flow)
    elif page == "🗄️ Archive":
        render_archive_page(birthday_flow)
    elif page == "💰 Gelt Calculator":
        render_gelt_page(birthday_flow, get_gelt_flow())
    elif page == "⚙️ Settings":
        render_settings_page(audit_logger)


# =============================================================================
# BIRTHDAYS
# =============================================================================

def render_verification_prompts(birthday_flow: BirthdayFlow, birthday: Birthday):
    """Ask the user about anything still unverified on this record."""
    if birthday.is_duplicate and not birthday.duplicate_verified:
        st.markdown(
            f'<div class="warning-box">Another entry has the same name and birth date as '
            f'<strong>{birthday.full_name}</strong>.</div>',
            unsafe_allow_html=True,
        )
        col1, col2 = st.columns(2)
        if col1.button("It's a different person", key=f"dup_ok_{birthday.id}"):
            run_async(birthday_flow.verify_duplicate(birthday.id))
            st.rerun()
        if col2.button("Delete this entry", key=f"dup_del_{birthday.id}"):
            run_async(birthday_flow.delete_birthdays([birthday.id]))
            st.rerun()

    if birthday.needs_gender_verification:
        gender = st.radio(
            f"Gender of {birthday.full_name}",
            options=[Gender.MALE, Gender.FEMALE],
            format_func=lambda g: g.value.title(),
            horizontal=True,
            key=f"gender_{birthday.id}",
        )
        if st.button("Save gender", key=f"gender_save_{birthday.id}"):
            run_async(birthday_flow.set_gender(birthday.id, gender))
            st.rerun()

    if birthday.needs_sunset_verification:
        after_sunset = st.checkbox(
            f"Was {birthday.full_name} born after sunset?",
            key=f"sunset_{birthday.id}",
        )
        if st.button("Save sunset info", key=f"sunset_save_{birthday.id}"):
            run_async(birthday_flow.set_after_sunset(birthday.id, after_sunset))
            st.rerun()


def render_edit_form(birthday_flow: BirthdayFlow, birthday: Birthday):
    with st.form(key=f"edit_{birthday.id}"):
        col1, col2 = st.columns(2)
        first_name = col1.text_input("First Name", value=birthday.first_name, max_chars=100)
        last_name = col2.text_input("Last Name", value=birthday.last_name, max_chars=100)
        birth_date = col1.date_input(
            "Birth Date",
            value=birthday.birth_date,
            min_value=date(1870, 1, 1),
            max_value=date.today(),
        )
        gender = col2.selectbox(
            "Gender",
            options=list(Gender),
            index=list(Gender).index(birthday.gender),
            format_func=lambda g: g.value.title(),
        )
        after_sunset = st.checkbox("Born after sunset", value=bool(birthday.after_sunset))

        if st.form_submit_button("💾 Save changes"):
            try:
                run_async(birthday_flow.update_birthday(
                    birthday.id,
                    NewBirthday(
                        first_name=first_name,
                        last_name=last_name,
                        birth_date=birth_date,
                        after_sunset=after_sunset,
                        gender=gender,
                    ),
                ))
                st.success("Saved")
                st.rerun()
            except BirthdayOperationError as e:
                st.error(e.message)


def render_birthdays_page(birthday_flow: BirthdayFlow):
    """Render the birthday list page."""
    st.title("🎂 Birthdays")

    # Filters
    col1, col2, col3, col4 = st.columns(4)
    search_term = col1.text_input("Search by name")
    gender = col2.selectbox(
        "Gender",
        options=[None, Gender.MALE, Gender.FEMALE],
        format_func=lambda g: "All Genders" if g is None else g.value.title(),
    )
    timeframe = col3.selectbox(
        "Timeframe",
        options=list(Timeframe),
        format_func=lambda t: t.value.replace("_", " ").title(),
    )
    sort_option = col4.selectbox(
        "Sort by",
        options=[(field, order) for field in SortField for order in SortOrder],
        format_func=lambda o: f"{o[0].value.replace('_', ' ').title()} ({o[1].value})",
    )

    filters = BirthdayFilters(
        search_term=search_term,
        gender=gender,
        timeframe=timeframe,
        sort_by=sort_option[0],
        sort_order=sort_option[1],
    )

    try:
        with st.spinner("Loading birthdays..."):
            birthdays = run_async(birthday_flow.list_birthdays(filters))
    except BirthdayOperationError as e:
        st.error(f"Could not load birthdays: {e.message}")
        return

    if not birthdays:
        st.info("No birthdays yet. Use 'Add Birthday' or import a CSV file.")

    attention = [b for b in birthdays if b.needs_attention]
    if attention:
        st.warning(f"{len(attention)} entries need verification")

    selected_ids = []
    for birthday in birthdays:
        next_birthday = birthday.next_birthday.strftime("%d/%m/%Y") if birthday.next_birthday else "-"
        label = f"{'⚠️ ' if birthday.needs_attention else ''}{birthday.full_name} · {birthday.hebrew_date or ''} · next: {next_birthday}"
        with st.expander(label):
            st.markdown(
                f"**Born:** {birthday.birth_date.strftime('%d/%m/%Y')}"
                f"{' (after sunset)' if birthday.after_sunset else ''}  \n"
                f"**Age:** {birthday.age}  \n"
                f"**Gender:** {birthday.gender.value.title()}"
            )
            if birthday.next_birthdays:
                st.markdown("**Upcoming Hebrew birthdays:** " + ", ".join(
                    d.strftime("%d/%m/%Y") for d in birthday.next_birthdays
                ))

            render_verification_prompts(birthday_flow, birthday)
            render_edit_form(birthday_flow, birthday)

            col1, col2 = st.columns(2)
            if col1.button("🗄️ Archive", key=f"archive_{birthday.id}"):
                try:
                    run_async(birthday_flow.archive_birthday(birthday.id))
                    st.rerun()
                except BirthdayOperationError as e:
                    st.error(e.message)
            if col2.checkbox("Select for deletion", key=f"select_{birthday.id}"):
                selected_ids.append(birthday.id)

    if selected_ids:
        st.markdown("---")
        confirm = st.checkbox(f"Yes, permanently delete {len(selected_ids)} entries")
        if st.button("🗑️ Delete selected", disabled=not confirm):
            try:
                result = run_async(birthday_flow.delete_birthdays(selected_ids))
                if result.success:
                    st.success(f"Deleted {result.success_count} entries")
                else:
                    st.warning("Some entries could not be deleted: " + "; ".join(result.errors))
                st.rerun()
            except BirthdayOperationError as e:
                st.error(e.message)


def render_add_page(birthday_flow: BirthdayFlow):
    """Render the add / import page."""
    st.title("➕ Add Birthday")

    with st.form(key="add_birthday", clear_on_submit=True):
        col1, col2 = st.columns(2)
        first_name = col1.text_input("First Name *", max_chars=100)
        last_name = col2.text_input("Last Name *", max_chars=100)
        birth_date = col1.date_input(
            "Birth Date *",
            value=None,
            min_value=date(1870, 1, 1),
            max_value=date.today(),
            format="DD/MM/YYYY",
        )
        gender = col2.selectbox(
            "Gender",
            options=list(Gender),
            index=list(Gender).index(Gender.UNKNOWN),
            format_func=lambda g: g.value.title(),
        )
        sunset = st.radio(
            "Born after sunset?",
            options=["Not sure", "No", "Yes"],
            horizontal=True,
        )
        submitted = st.form_submit_button("➕ Add", type="primary")

    if submitted:
        data = NewBirthday(
            first_name=first_name,
            last_name=last_name,
            birth_date=birth_date,
            after_sunset={"Not sure": None, "No": False, "Yes": True}[sunset],
            gender=gender,
        )
        validation = birthday_flow.validator.validate(data)
        if not validation.is_valid:
            st.error(birthday_flow.validator.get_user_friendly_summary(validation))
        else:
            try:
                birthday = run_async(birthday_flow.add_birthday(data))
                st.success(f"Added {birthday.full_name} ({birthday.hebrew_date})")
                if birthday.is_duplicate:
                    st.warning("An entry with the same name and birth date already exists. Please verify it on the Birthdays page.")
            except BirthdayOperationError as e:
                st.error(e.message)

    st.markdown("---")
    st.subheader("📥 Import from CSV")
    st.markdown(
        "Columns: **First Name**, **Last Name**, **Birthday** (DD/MM/YYYY), "
        "After Sunset (yes/no), Gender (male/female)"
    )
    uploaded_file = st.file_uploader("Choose a CSV file", type=["csv"], key="birthday_csv")
    if uploaded_file and st.button("📥 Import", type="primary"):
        if uploaded_file.size > get_settings().app.max_upload_size_bytes:
            st.error("File is too large")
            return
        try:
            with st.spinner("Importing..."):
                result = run_async(birthday_flow.import_csv(
                    uploaded_file.getvalue(),
                    correlation_id=create_correlation_id(),
                ))
            st.success(f"Imported {result.success_count} birthdays")
            for error in result.errors:
                st.warning(error)
        except BirthdayOperationError as e:
            st.error(e.message)


def render_archive_page(birthday_flow: BirthdayFlow):
    st.title("🗄️ Archive")
    try:
        archived = run_async(birthday_flow.list_archived())
    except BirthdayOperationError as e:
        st.error(e.message)
        return

    if not archived:
        st.info("The archive is empty.")
    for birthday in archived:
        col1, col2 = st.columns([4, 1])
        col1.markdown(f"**{birthday.full_name}** · {birthday.birth_date.strftime('%d/%m/%Y')}")
        if col2.button("Restore", key=f"restore_{birthday.id}"):
            try:
                run_async(birthday_flow.restore_birthday(birthday.id))
                st.rerun()
            except BirthdayOperationError as e:
                st.error(e.message)


# =============================================================================
# GELT CALCULATOR
# =============================================================================

def render_budget_summary(gelt_flow: GeltFlow):
    session = gelt_flow.session
    calculation = session.calculation

    col1, col2, col3 = st.columns(3)
    col1.metric("Total Required", money(calculation.total_required))
    col2.metric("Per Participant", money(calculation.amount_per_participant))
    col3.metric("Maximum Allowed", money(calculation.max_allowed))

    with st.form(key="budget_config"):
        col1, col2 = st.columns(2)
        participants = col1.number_input(
            "Participants",
            min_value=0,
            value=session.budget_config.participants,
            step=1,
        )
        overflow = col2.number_input(
            "Allowed Overflow (%)",
            min_value=0.0,
            value=float(session.budget_config.allowed_overflow_percentage),
            step=1.0,
        )
        if st.form_submit_button("Update budget"):
            session.update_budget_config(
                participants=int(participants),
                allowed_overflow_percentage=overflow,
            )
            st.rerun()


def render_age_groups(gelt_flow: GeltFlow):
    session = gelt_flow.session
    calculation = session.calculation

    st.subheader("Age Groups")
    overlaps = find_overlapping_groups(session.age_groups)
    if overlaps:
        st.warning("Overlapping age groups: " + ", ".join(f"{a} / {b}" for a, b in overlaps))

    for group in session.age_groups:
        totals = calculation.group_totals.get(group.id)
        summary = f"{totals.children_count} children · {money(totals.total)}" if totals else "excluded"
        with st.expander(f"{group.name} · {money(group.amount_per_child)} per child · {summary}"):
            with st.form(key=f"group_{group.id}"):
                col1, col2, col3 = st.columns(3)
                min_age = col1.number_input("Min age", min_value=0, value=group.min_age, step=1)
                max_age = col2.number_input("Max age", min_value=0, value=group.max_age, step=1)
                amount = col3.number_input(
                    "Amount per child",
                    min_value=0,
                    value=int(group.amount_per_child),
                    step=get_settings().gelt.amount_step,
                )
                is_included = st.checkbox("Included", value=group.is_included)
                if st.form_submit_button("Save group"):
                    try:
                        session.edit_age_group(
                            group.id,
                            min_age=int(min_age),
                            max_age=int(max_age),
                            amount_per_child=amount,
                            is_included=is_included,
                        )
                        st.rerun()
                    except AgeGroupValidationError as e:
                        st.error(str(e))

    col1, col2 = st.columns(2)
    if col1.button("💾 Save as my defaults"):
        session.save_custom_settings()
        st.success("Age groups saved")
    if col2.button("↩️ Restore built-in groups"):
        session.clear_custom_settings()
        st.rerun()


def render_children(gelt_flow: GeltFlow):
    session = gelt_flow.session
    st.subheader(f"Children ({len(session.children)})")

    for child in session.children:
        col1, col2, col3, col4 = st.columns([3, 2, 1, 1])
        name = child.full_name
        if child.age_modified:
            name += f" (was {child.original_age})"
        col1.markdown(name)
        new_age = col2.number_input(
            "Age",
            min_value=0,
            value=child.age,
            step=1,
            key=f"age_{child.id}",
            label_visibility="collapsed",
        )
        if new_age != child.age:
            session.set_age(child.id, int(new_age))
            st.rerun()
        if child.age_modified and col3.button("Reset", key=f"reset_{child.id}"):
            session.reset_age(child.id)
            st.rerun()
        included = col4.checkbox("Include", value=session.is_included(child.id), key=f"inc_{child.id}")
        if included != session.is_included(child.id):
            session.exclude_child(child.id, exclude=not included)
            st.rerun()


def render_gelt_page(birthday_flow: BirthdayFlow, gelt_flow: GeltFlow):
    """Render the gelt calculator."""
    st.title("💰 Gelt Calculator")

    with st.expander("📥 Import children", expanded=not gelt_flow.session.children):
        uploaded_file = st.file_uploader(
            "CSV or Excel with First Name, Last Name, Age (or Full Name, Age)",
            type=get_settings().app.supported_formats_list,
            key="gelt_file",
        )
        if uploaded_file and st.button("Import file"):
            try:
                report = run_async(gelt_flow.import_file(uploaded_file.getvalue(), uploaded_file.name))
                if report.has_data:
                    st.success(f"Imported {report.accepted_count} children")
                else:
                    st.error("No valid data found in the file")
                for row in report.rows:
                    if not row.accepted:
                        st.warning(f"Row {row.row_number}: {row.reason}")
            except GeltImportError as e:
                st.error(str(e))

        if st.button("Use the birthday list"):
            try:
                birthdays = run_async(birthday_flow.list_birthdays())
                children = run_async(gelt_flow.import_from_birthdays(birthdays))
                st.success(f"Imported {len(children)} children")
                st.rerun()
            except BirthdayOperationError as e:
                st.error(e.message)

    render_budget_summary(gelt_flow)
    render_age_groups(gelt_flow)
    render_children(gelt_flow)

    st.markdown("---")
    col1, col2 = st.columns(2)
    if col1.button("📦 Prepare export"):
        st.session_state.gelt_export = (
            run_async(gelt_flow.export_json()),
            run_async(gelt_flow.export_excel()),
        )
    if col2.button("🧹 Clear all"):
        gelt_flow.session.reset_to_defaults()
        st.session_state.pop("gelt_export", None)
        st.rerun()

    if "gelt_export" in st.session_state:
        json_content, excel_content = st.session_state.gelt_export
        col1, col2 = st.columns(2)
        col1.download_button(
            "⬇️ Download JSON",
            data=json_content,
            file_name="gelt-distribution.json",
            mime="application/json",
        )
        col2.download_button(
            "⬇️ Download Excel",
            data=excel_content,
            file_name="gelt-distribution.xlsx",
            mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        )


def render_settings_page(audit_logger: AuditLogger):
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Configuration Status")

    status = validate_all_settings()

    sections = [
        ("Google Sheets (Storage)", "google_sheets"),
        ("Gelt Calculator", "gelt"),
        ("Hebrew Calendar", "calendar"),
        ("Application", "app"),
    ]

    for name, key in sections:
        if status.get(key, False):
            st.success(f"✅ {name} - Configured")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    st.markdown("---")
    st.markdown("### Configuration")
    st.markdown(
        "To configure the application, create a `.env` file. "
        "See `.env.example` for the available variables."
    )

    st.markdown("---")
    st.markdown("### Recent Activity")

    events = run_async(audit_logger.get_recent_events(limit=20))
    if not events:
        st.info("No activity recorded yet.")
        return

    st.dataframe(
        [
            {
                "When": event.timestamp.strftime("%d/%m/%Y %H:%M"),
                "Event": event.event_type.value.replace("_", " "),
                "Details": event.description,
            }
            for event in events
        ],
        use_container_width=True,
        hide_index=True,
    )


if __name__ == "__main__":
    main()
