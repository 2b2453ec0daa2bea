ASSISTANT_PROMPT = """You are an AI assistant for an HR management system.
Provide helpful, professional responses about HR-related queries.
Keep the answer under 120 words. If the question needs a human, say so and
point the employee to the HR team.

EMPLOYEE: {name} ({role}, {department})

RECENT CONVERSATION:
{history}

QUESTION:
{query}
"""

RESPONSE_TEMPLATES = {
    "leave_request": (
        "{greeting}you can request leave from the Leave page by choosing the leave type and dates. "
        "Your request goes to {approver} for approval and you will be notified once it is reviewed."
    ),
    "performance_inquiry": (
        "{greeting}your performance reviews, ratings and goals are on the Performance page. "
        "Reviews are run each cycle by {approver}, and you can add self-assessment notes before the review meeting."
    ),
    "policy_question": (
        "{greeting}company policies, procedures and the employee handbook are available in the Policies section. "
        "If a policy is unclear for {department}, HR can walk you through it."
    ),
    "general_hr": (
        "{greeting}for payroll, salary and benefits questions, your details are under Profile > Compensation. "
        "For anything not shown there, the HR team can help directly."
    ),
}

GENERIC_RESPONSE = (
    "{greeting}I'm not sure I understood that. I can help with leave requests, performance reviews, "
    "company policies and general HR questions like payroll or benefits. "
    "Try rephrasing, or contact HR directly."
)

ROLE_ADDENDA = {
    ("leave_request", "manager"): "As a manager, you can also approve your team's pending requests from the same page.",
    ("leave_request", "hr"): "HR can review leave balances for every department under Reports.",
    ("performance_inquiry", "manager"): "You can view your team's performance overview from the Performance dashboard.",
    ("performance_inquiry", "hr"): "Company-wide review progress is available in the AI Insights page.",
}

DATE_NOTE = "I noticed you mentioned {dates}; make sure those dates are included in your request."
