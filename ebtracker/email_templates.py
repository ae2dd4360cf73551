"""
MJML Email Templates
Workflow notification emails, one builder per event
"""

import html
from typing import Callable, Optional

from .config import DASHBOARD_URL
from .shared.validators import to_utc

THEME = {
    "primary": "#667eea",
    "primary_dark": "#764ba2",
    "background": "#f4f7fa",
    "text_primary": "#1e293b",
    "text_secondary": "#475569",
    "text_muted": "#64748b",
    "border": "#e2e8f0",
}

BANNER_COLORS = {
    "success": ("#dcfce7", "#22c55e", "#166534"),
    "warning": ("#fef3c7", "#f59e0b", "#92400e"),
    "info": ("#dbeafe", "#3b82f6", "#1e40af"),
    "error": ("#fee2e2", "#ef4444", "#991b1b"),
    "urgent": ("#fef2f2", "#dc2626", "#7f1d1d"),
}


def _v(data: dict, key: str, default: str = "N/A") -> str:
    value = data.get(key)
    if value is None or value == "":
        return default
    return html.escape(str(value))


def format_currency(amount) -> str:
    try:
        return f"${float(amount or 0):,.2f}"
    except (TypeError, ValueError):
        return "$0.00"


def format_date(value) -> str:
    parsed = to_utc(value)
    if not parsed:
        return "N/A"
    return parsed.strftime("%B %d, %Y")


def interpolate(template: str, data: dict) -> str:
    """Replace {{key}} placeholders; missing or empty values become N/A"""
    result = template or ""
    for key, value in data.items():
        result = result.replace("{{" + key + "}}", str(value) if value not in (None, "") else "N/A")
    return result


def info_box(rows: list[tuple[str, str]]) -> str:
    items = "".join(
        f"""
        <tr>
          <td style="padding: 10px 0; border-bottom: 1px solid {THEME['border']};">
            <strong style="color: {THEME['text_secondary']};">{label}:</strong>
            <span style="color: {THEME['text_primary']}; margin-left: 8px;">{value}</span>
          </td>
        </tr>"""
        for label, value in rows
    )
    return f"""
    <mj-table cellpadding="0" padding="16px 0">
      {items}
    </mj-table>
    """


def status_banner(message: str, kind: str = "info") -> str:
    bg, border, text = BANNER_COLORS.get(kind, BANNER_COLORS["info"])
    return f"""
    <mj-text padding="12px 0">
      <div style="background-color: {bg}; border-left: 4px solid {border}; padding: 15px 20px; border-radius: 4px; color: {text};">
        {message}
      </div>
    </mj-text>
    """


def get_base_template(
    title: str,
    content_sections: str,
    cta_url: Optional[str] = None,
    cta_label: Optional[str] = None,
    cta_color: Optional[str] = None,
) -> str:
    """Base MJML template wrapper for all emails"""
    cta_section = ""
    if cta_url and cta_label:
        cta_section = f"""
        <mj-section background-color="#ffffff" padding="0 40px 32px 40px">
          <mj-column>
            <mj-button href="{cta_url}" background-color="{cta_color or THEME['primary']}" color="#ffffff"
              font-weight="600" border-radius="6px" padding="0" font-size="15px">
              {cta_label}
            </mj-button>
          </mj-column>
        </mj-section>
        """

    return f"""
    <mjml>
      <mj-head>
        <mj-title>{title}</mj-title>
        <mj-attributes>
          <mj-all font-family="'Segoe UI', Tahoma, Geneva, Verdana, sans-serif" />
          <mj-text font-size="15px" line-height="1.6" color="{THEME['text_secondary']}" />
        </mj-attributes>
      </mj-head>
      <mj-body background-color="{THEME['background']}">
        <mj-section background-color="{THEME['primary']}" padding="30px">
          <mj-column>
            <mj-text align="center" font-size="24px" font-weight="600" color="#ffffff">EB-Tracker</mj-text>
            <mj-text align="center" font-size="14px" color="#e0e7ff" padding="0">Project Management System</mj-text>
          </mj-column>
        </mj-section>

        <mj-section background-color="#ffffff" padding="32px 40px 8px 40px">
          <mj-column>
            <mj-text font-size="22px" font-weight="600" color="{THEME['text_primary']}" padding="0 0 12px 0">
              {title}
            </mj-text>
            {content_sections}
          </mj-column>
        </mj-section>

        {cta_section}

        <mj-section padding="20px">
          <mj-column>
            <mj-text align="center" font-size="13px" color="{THEME['text_muted']}">
              This is an automated notification from EB-Tracker
            </mj-text>
          </mj-column>
        </mj-section>
      </mj-body>
    </mjml>
    """


# ============================================================================
# EVENT TEMPLATES
# ============================================================================


def default_template(data: dict) -> str:
    return get_base_template(
        "Notification",
        f"<mj-text>{_v(data, 'message', 'You have a new notification from EB-Tracker.')}</mj-text>",
        DASHBOARD_URL,
        "View Dashboard",
    )


def proposal_created_template(data: dict) -> str:
    content = info_box(
        [
            ("Project Name", _v(data, "projectName")),
            ("Client", _v(data, "clientCompany")),
            ("Created By", _v(data, "createdBy")),
        ]
    ) + status_banner("Please review the proposal and proceed with estimation.")
    return get_base_template("📄 New Proposal Created", content, DASHBOARD_URL, "View Proposal")


def estimation_complete_template(data: dict) -> str:
    content = info_box(
        [
            ("Project Name", _v(data, "projectName")),
            ("Estimated Manhours", _v(data, "manhours")),
            ("Estimated By", _v(data, "estimatorName")),
        ]
    ) + status_banner("The estimation is complete and ready for pricing.")
    return get_base_template("📐 Estimation Complete", content, DASHBOARD_URL, "Add Pricing")


def pricing_complete_template(data: dict) -> str:
    content = info_box(
        [
            ("Project Name", _v(data, "projectName")),
            ("Project Number", _v(data, "projectNumber")),
            ("Quote Value", format_currency(data.get("quoteValue"))),
        ]
    ) + status_banner("Pricing is complete. This proposal now awaits Director approval.", "warning")
    return get_base_template("💵 Pricing Complete", content, DASHBOARD_URL, "Review Proposal")


def project_approved_template(data: dict) -> str:
    content = (
        status_banner("Congratulations! Your project has been approved.", "success")
        + info_box(
            [
                ("Project Name", _v(data, "projectName")),
                ("Client", _v(data, "clientCompany")),
                ("Approved By", _v(data, "approvedBy", "Director")),
            ]
        )
        + "<mj-text>The project is now ready to move to the next phase.</mj-text>"
    )
    return get_base_template("✅ Project Approved by Director", content, DASHBOARD_URL, "View Project")


def project_won_template(data: dict) -> str:
    content = info_box(
        [
            ("Project Name", _v(data, "projectName")),
            ("Client", _v(data, "clientCompany")),
            ("Quote Value", format_currency(data.get("quoteValue"))),
        ]
    ) + status_banner("The proposal has been won and needs allocation.", "success")
    return get_base_template("🏆 Project Won", content, DASHBOARD_URL, "Create Project")


def project_allocated_template(data: dict) -> str:
    content = info_box(
        [
            ("Project", f"{_v(data, 'projectName')} ({_v(data, 'projectCode')})"),
            ("Design Lead", _v(data, "designLeadName")),
            ("Allocated Hours", f"{_v(data, 'maxAllocatedHours', '0')} hours"),
            ("Target Completion", format_date(data.get("targetCompletionDate"))),
            ("Notes", _v(data, "allocationNotes")),
        ]
    )
    return get_base_template(
        "📌 Project Allocated", content, f"{DASHBOARD_URL}/projects/{data.get('projectId', '')}", "View Project"
    )


def designer_allocated_template(data: dict) -> str:
    content = info_box(
        [
            ("Project", f"{_v(data, 'projectName')} ({_v(data, 'projectCode')})"),
            ("Designer", _v(data, "designerName")),
            ("Allocated Hours", f"{_v(data, 'allocatedHours', '0')} hours"),
            ("Assigned By", _v(data, "assignedBy")),
        ]
    )
    return get_base_template(
        "🎨 You Have Been Assigned", content, f"{DASHBOARD_URL}/projects/{data.get('projectId', '')}", "Open Project"
    )


def time_request_created_template(data: dict) -> str:
    content = info_box(
        [
            ("Project", f"{_v(data, 'projectName')} ({_v(data, 'projectCode')})"),
            ("Client", _v(data, "clientCompany")),
            ("Designer", _v(data, "designerName")),
            ("Requested Hours", f"{_v(data, 'requestedHours', '0')} hours"),
            ("Current Hours Logged", f"{_v(data, 'currentHoursLogged', '0')} hours"),
            ("Current Allocated", f"{_v(data, 'currentAllocatedHours', '0')} hours"),
            ("Reason", _v(data, "reason", "No reason provided")),
        ]
    ) + status_banner("This request requires approval from COO/Director.", "warning")
    return get_base_template(
        "⏰ Additional Time Request Submitted", content, f"{DASHBOARD_URL}/time-requests", "Review Request"
    )


def time_request_approved_template(data: dict) -> str:
    content = status_banner("Your request for additional time has been approved!", "success") + info_box(
        [
            ("Project", f"{_v(data, 'projectName')} ({_v(data, 'projectCode')})"),
            ("Requested Hours", f"{_v(data, 'requestedHours', '0')} hours"),
            ("Approved Hours", f"{_v(data, 'approvedHours', '0')} hours"),
            ("Approved By", _v(data, "approvedBy", "COO")),
            ("Comments", _v(data, "comments", "No additional comments")),
        ]
    )
    return get_base_template(
        "✅ Additional Time Approved", content, f"{DASHBOARD_URL}/projects/{data.get('projectId', '')}", "View Project"
    )


def time_request_rejected_template(data: dict) -> str:
    content = status_banner("Your request for additional time has been rejected.", "error") + info_box(
        [
            ("Project", f"{_v(data, 'projectName')} ({_v(data, 'projectCode')})"),
            ("Requested Hours", f"{_v(data, 'requestedHours', '0')} hours"),
            ("Rejected By", _v(data, "rejectedBy", "COO")),
            ("Reason", _v(data, "rejectReason", "No reason provided")),
        ]
    )
    return get_base_template(
        "❌ Additional Time Request Rejected",
        content,
        f"{DASHBOARD_URL}/projects/{data.get('projectId', '')}",
        "View Project",
    )


def variation_requested_template(data: dict) -> str:
    content = info_box(
        [
            ("Project", f"{_v(data, 'projectName')} ({_v(data, 'projectCode')})"),
            ("Client", _v(data, "clientCompany")),
            ("Variation Code", _v(data, "variationCode")),
            ("Estimated Hours", f"{_v(data, 'estimatedHours', '0')} hours"),
            ("Requested By", _v(data, "requestedBy")),
            ("Description", _v(data, "scopeDescription")),
        ]
    ) + status_banner("This variation requires your approval.", "warning")
    return get_base_template("📊 Variation Request", content, f"{DASHBOARD_URL}/variations", "Review Variation")


def variation_approved_template(data: dict) -> str:
    content = status_banner("The variation request has been approved.", "success") + info_box(
        [
            ("Project", f"{_v(data, 'projectName')} ({_v(data, 'projectCode')})"),
            ("Client", _v(data, "clientCompany")),
            ("Variation Code", _v(data, "variationCode")),
            ("Additional Hours", f"{_v(data, 'approvedHours', '0')} hours"),
            ("Approved By", _v(data, "approvedBy")),
        ]
    )
    return get_base_template(
        "✅ Variation Approved", content, f"{DASHBOARD_URL}/projects/{data.get('projectId', '')}", "View Project Details"
    )


def invoice_created_template(data: dict) -> str:
    content = info_box(
        [
            ("Invoice Number", _v(data, "invoiceNumber")),
            ("Project", f"{_v(data, 'projectName')} ({_v(data, 'projectCode')})"),
            ("Client", _v(data, "clientCompany")),
            ("Invoice Amount", format_currency(data.get("invoiceAmount"))),
            ("Due Date", format_date(data.get("dueDate"))),
            ("Created By", _v(data, "createdBy", "Accounts")),
            ("Payment Terms", _v(data, "paymentTerms", "Net 30")),
        ]
    ) + status_banner("Please review this invoice before sending it to the client.")
    return get_base_template(
        "💰 New Invoice Created", content, f"{DASHBOARD_URL}/invoices/{data.get('invoiceId', '')}", "View Invoice"
    )


def invoice_payment_due_template(data: dict) -> str:
    days = _v(data, "daysUntilDue", "0")
    content = info_box(
        [
            ("Invoice Number", _v(data, "invoiceNumber")),
            ("Client", _v(data, "clientCompany")),
            ("Project", _v(data, "projectName")),
            ("Invoice Amount", format_currency(data.get("invoiceAmount"))),
            ("Due Date", format_date(data.get("dueDate"))),
            ("Days Until Due", f"{days} days"),
        ]
    ) + status_banner(f"Payment is due in {days} days. Please follow up with the client if necessary.", "warning")
    return get_base_template(
        "⚠️ Payment Due Reminder",
        content,
        f"{DASHBOARD_URL}/invoices/{data.get('invoiceId', '')}",
        "View Invoice Details",
    )


def invoice_overdue_template(data: dict) -> str:
    content = status_banner("This invoice is now OVERDUE. Immediate action required.", "urgent") + info_box(
        [
            ("Invoice Number", _v(data, "invoiceNumber")),
            ("Client", _v(data, "clientCompany")),
            ("Project", _v(data, "projectName")),
            ("Invoice Amount", format_currency(data.get("invoiceAmount"))),
            ("Original Due Date", format_date(data.get("dueDate"))),
            ("Days Overdue", f"{_v(data, 'daysOverdue', '0')} days"),
        ]
    )
    return get_base_template(
        "🔴 Overdue Payment",
        content,
        f"{DASHBOARD_URL}/invoices/{data.get('invoiceId', '')}",
        "View Invoice & Take Action",
        cta_color="#dc2626",
    )


# event -> (subject template, MJML body builder)
EMAIL_TEMPLATES: dict[str, tuple[str, Callable[[dict], str]]] = {
    "default": ("Notification from EB-Tracker", default_template),
    "proposal.created": ("📄 New Proposal Created: {{projectName}}", proposal_created_template),
    "estimation.complete": ("📐 Estimation Complete: {{projectName}}", estimation_complete_template),
    "pricing.complete": ("💵 Pricing Complete: {{projectName}}", pricing_complete_template),
    "project.approved_by_director": ("✅ Project Approved: {{projectName}}", project_approved_template),
    "project.won": ("🏆 Project Won: {{projectName}}", project_won_template),
    "project.allocated": ("📌 Project Allocated: {{projectName}}", project_allocated_template),
    "designer.allocated": ("🎨 New Project Assignment: {{projectName}}", designer_allocated_template),
    "time_request.created": ("⏰ Additional Time Request: {{projectName}}", time_request_created_template),
    "time_request.approved": ("✅ Additional Time Approved: {{projectName}}", time_request_approved_template),
    "time_request.rejected": ("❌ Additional Time Request Rejected: {{projectName}}", time_request_rejected_template),
    "variation.requested": ("📊 Variation Request: {{projectName}}", variation_requested_template),
    "variation.approved_detail": ("✅ Variation Approved: {{projectName}}", variation_approved_template),
    "invoice.created": ("💰 New Invoice Created: {{projectName}} - {{invoiceNumber}}", invoice_created_template),
    "invoice.payment_due": (
        "⚠️ Payment Due Reminder: {{invoiceNumber}} - {{clientCompany}}",
        invoice_payment_due_template,
    ),
    "invoice.overdue": ("🔴 OVERDUE Payment: {{invoiceNumber}} - {{clientCompany}}", invoice_overdue_template),
}


def render_email(event: str, data: dict) -> tuple[str, str]:
    """Return (subject, mjml) for an event, falling back to the default template"""
    subject_template, builder = EMAIL_TEMPLATES.get(event, EMAIL_TEMPLATES["default"])
    return interpolate(subject_template, data), builder(data)
