"""Standard operating procedures published to MCP clients as prompts, one per domain."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Workflow:
    prompt_name: str
    description: str
    text: str


PRE_MOVE_WORKFLOW = """
PRE-MOVE WORKFLOW (Most automatable phase)

1A. INITIATION & SETUP
Automation Targets:
1A.1 Employer Move Creation (Preferred Future Flow)
- Employers create or upload moves directly in the platform.
- Required fields: Employee full name, Email, Phone number, Origin city, Destination city, Office location, Program / policy details, Target move date.
- Platform validates required fields.

1A.2 Temporary Backstop (Current Email-Initiated Flow)
- Auto-parse inbound client email -> infer and populate: Employee contact data, Origin, Destination, Budget or program type.
- Auto-create move record and send: Employee welcome email, Employer confirmation, Calendar link for optional call.

1A.3 Employee First Login Experience
- On first login, show Welcome Screen with: Employer name, Employee name, Summary of relocation program.
- Prompt employee to: Review and confirm profile data, See "What's covered / what's not covered", Proceed into service selection or AI-guided intake.

1A.4 Service Universe & Policy-Driven Choices
- Auto-configure visible services based on employer program/policy.
- Track exceptions: Log requests not covered by policy as "exception request" for approval.

1B. NEEDS DISCOVERY (EMPLOYEE & FAMILY PROFILE)
Automation Targets:
1B.1 Structured Lifestyle Intake via Platform
- AI-driven questionnaire collects: Household composition, Must-have vs nice-to-have criteria, Commute tolerances, Budget sensitivity.
- Output is a structured profile for matching logic.

1B.2 Match Categories for Housing
- Categorize results: Optimal match, Strong match, Essential match.

1B.3 Required Document Checklist & Milestones
- Auto-generate document checklist based on selected services and Country/state rules.
- Show service milestones and dependencies.
"""

HOUSING_WORKFLOW = """
HOUSING WORKFLOW

1C.1 Housing (Temporary & Long-Term)
Automation Targets:
- Use housing search engines and/or partner APIs to generate a standardized option list.
- Auto-generate comparison tables with consistent fields: commute, price, type, parking, terms, availability, neighborhood.
- Apply policy and budget guardrails: Filter out options above budget unless flagged as potential exception.
- Approval workflows: Employee selects from options within budget; Employer approves if required.
- Booking layer: Book in employee's name but charge against employer/draw-down account.
- For long-term rentals, expose structured tasks: "Schedule tours", "Review lease", "Confirm final address for HHG".
"""

SERVICES_WORKFLOW = """
SERVICES WORKFLOW

1C.2 Household Goods (HHG / Furniture Moving)
Automation Targets:
- Auto-trigger survey link to employee when HHG service is selected.
- Auto-ingest mover quotes into a normalized comparison view.
- Apply guardrails: If quote <= budget show to employee; If no quotes <= budget flag to employer.
- Auto-capture employee selection -> send structured "proceed" order to vendor.
- Automatically track required data for insurance and confirmation.
- Automated reminders to employee and vendor around: Final address confirmation, Delivery date windows.

1C.3 Car Shipment
Automation Targets:
- Standard car shipment request form -> vendor integration or automated email.
- Auto-store quotes and map them to move record.
- Auto-forward approved quote and shipment details to vendor (Pickup window, dropoff location, contact info).
- Notification and escalation logic for delays, status updates, and issues.

1C.4 Flights
Automation Targets:
- Flight API integration.
- Show 2-3 options that satisfy employer rules first, employee preferences second.
- Approval workflow and virtual card for payment.

1C.5 Orientation / Settling-In Services
Automation Targets:
- Maintain a city knowledgebase with local guidance.
- Auto-generate an orientation plan and recommended DSP tasks per city.
- Quote multiple DSP providers unless employer has a preferred partner.
- Auto-send introduction package to chosen DSP.

1C.6 Visa / Immigration (When Included)
Automation Targets:
- Immigration partner integration or structured milestone template per country.
- Auto-generated timeline with dependency markers.
- Automatic reminders for document collection and appointment deadlines.
"""

FINANCIAL_WORKFLOW = """
FINANCIAL WORKFLOW

1C.7 Tax (Income Tax & Gross-Up - Pre-Move Stage)
Automation Targets:
- Auto-create a tax intro package containing standardized required fields.
- Automatically send to tax partner upon move creation if tax is included in policy.

3A. Invoicing (Post-Move)
Automation Targets:
- Vendor and partner portal to upload invoices against specific moves and services.
- OCR + classification engine to tag: vendor, service type, date, amount, taxability.
- Auto-build employer invoice packet with: Vendor receipts, Service summary sheet, Platform fee, Gross-up summary.
- Auto-push invoice to Stripe or integrated billing system.
- Automatic reminders and dunning logic for unpaid invoices.

3B. Tax Gross-Up Execution (Post-Move)
Automation Targets:
- Internal gross-up calculator using: Service type, Service cost, Country and state rules, Employee income band.
- Auto-generate gross-up summary and send to tax partner for confirmation.
- Auto-send final approved gross-up summary to employer and incorporate in final invoice.
"""

OPERATIONS_WORKFLOW = """
OPERATIONS WORKFLOW

2. DAY-OF-MOVE WORKFLOW
Automation Targets:
- Automated check-in sequence and reminders tied to key service dates (Movers, Car delivery, Housing check-in).
- Escalation flows: When employee reports an issue or vendor status suggests delay, trigger escalation bot (Capture details, Request status, Propose remediation, Notify employer).

3C. Employee Follow-Up & Case Closure
Automation Targets:
- Automated post-move survey with sentiment and NPS.
- Keyword and sentiment detection to route negative responses to human for follow-up.
- Auto-close case when: All services marked complete, No open tasks or unresolved issues.
"""

WORKFLOWS: dict[str, Workflow] = {
    "moves": Workflow("pre-move-workflow", "Get the Pre-Move workflow SOP", PRE_MOVE_WORKFLOW),
    "housing": Workflow("housing-workflow", "Get the Housing workflow SOP", HOUSING_WORKFLOW),
    "services": Workflow("services-workflow", "Get the Services workflow SOP", SERVICES_WORKFLOW),
    "financial": Workflow(
        "financial-workflow", "Get the Financial workflow SOP", FINANCIAL_WORKFLOW
    ),
    "operations": Workflow(
        "operations-workflow", "Get the Operations workflow SOP", OPERATIONS_WORKFLOW
    ),
}


def get_workflow(domain: str) -> Optional[Workflow]:
    """SOP for ``domain``; the email domain has none."""
    return WORKFLOWS.get(domain)
