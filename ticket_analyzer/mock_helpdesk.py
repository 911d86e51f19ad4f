"""Mock Zendesk API served through ``httpx.MockTransport``.

Stands in for the real helpdesk when trying the analyzer locally
(``ticket-analyzer fetch --mock``) and in tests. The data set is a job board
whose customers just received a new ATS and admin panel: twelve tickets
created between 2026-01-04 and 2026-01-15, ranging from critical bugs through
feature requests and onboarding questions to positive feedback.

Routes (each also without the ``.json`` suffix):

- ``GET /api/v2/tickets.json[?created_after=YYYY-MM-DD]``
- ``GET /api/v2/tickets/{id}.json``
- ``GET /api/v2/tickets/{id}/comments.json``
- ``GET /api/v2/search.json?query=type:ticket created>YYYY-MM-DD``

Authentication accepts any ``Bearer`` token, or ``Basic`` credentials in
either the ``email/token:api_token`` or ``email:password`` form.
"""

import base64
import binascii
import copy
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx

MOCK_BASE_URL = "http://localhost:3001"
MOCK_SUBDOMAIN = "mockcompany"


def _ticket_url(ticket_id: int) -> str:
    return f"https://{MOCK_SUBDOMAIN}.zendesk.com/api/v2/tickets/{ticket_id}.json"


def _ticket(
    ticket_id: int,
    subject: str,
    description: str,
    created_at: str,
    updated_at: str,
    status: str,
    priority: str,
    ticket_type: str,
    requester_id: int,
    assignee_id: int,
    tags: List[str],
    channel: str,
) -> Dict[str, Any]:
    return {
        "id": ticket_id,
        "url": _ticket_url(ticket_id),
        "subject": subject,
        "raw_subject": subject,
        "description": description,
        "created_at": created_at,
        "updated_at": updated_at,
        "status": status,
        "priority": priority,
        "type": ticket_type,
        "requester_id": requester_id,
        "submitter_id": requester_id,
        "assignee_id": assignee_id,
        "organization_id": requester_id + 200,
        "group_id": 401,
        "tags": tags,
        "via": {"channel": channel},
        "is_public": True,
        "has_incidents": False,
    }


def _comment(comment_id: int, author_id: int, created_at: str, body: str, channel: str = "web") -> Dict[str, Any]:
    return {
        "id": comment_id,
        "type": "Comment",
        "body": body,
        "html_body": f"<p>{body}</p>",
        "plain_body": body,
        "author_id": author_id,
        "created_at": created_at,
        "public": True,
        "attachments": [],
        "via": {"channel": channel},
    }


MOCK_TICKETS: List[Dict[str, Any]] = [
    # Negative: ATS bugs
    _ticket(
        1,
        "ATS candidate pipeline not saving changes",
        "Every time I try to move a candidate from 'Screening' to 'Interview' stage, the page refreshes and the "
        "candidate is back in the original stage. This is happening for all our job postings. We have 50+ "
        "candidates stuck and can't process them. This is critical for our hiring workflow.",
        "2026-01-15T09:23:00Z", "2026-01-15T14:30:00Z", "open", "high", "problem", 101, 201,
        ["ats", "bug", "pipeline"], "web",
    ),
    _ticket(
        2,
        "Bulk email to candidates fails with error 500",
        "When I select multiple candidates and try to send a bulk rejection email, I get a server error. The old "
        "system handled this perfectly. Now I have to email each candidate individually which is taking hours. "
        "Please fix ASAP.",
        "2026-01-14T11:45:00Z", "2026-01-14T16:20:00Z", "open", "high", "problem", 102, 202,
        ["email", "bug", "bulk-actions"], "web",
    ),
    _ticket(
        3,
        "Resume parsing completely broken",
        "The new ATS resume parser is extracting wrong information. It's putting email addresses in the phone "
        "field and work experience dates are all wrong. We relied heavily on this feature and now our recruiters "
        "are spending double the time manually correcting entries.",
        "2026-01-13T08:15:00Z", "2026-01-13T12:00:00Z", "pending", "high", "problem", 103, 203,
        ["ats", "bug", "resume-parser"], "email",
    ),
    # Negative: UI complaints
    _ticket(
        4,
        "New dashboard is confusing and slow",
        "The new admin dashboard takes forever to load and I can't find anything anymore. Where did the quick "
        "actions menu go? The old interface was much more intuitive. My team is frustrated and productivity has "
        "dropped significantly since the update.",
        "2026-01-12T14:30:00Z", "2026-01-12T15:45:00Z", "open", "normal", "problem", 104, 201,
        ["ui", "performance", "dashboard"], "web",
    ),
    _ticket(
        5,
        "Mobile view of admin panel is unusable",
        "I often review candidates on my phone during commute. The new admin panel doesn't work on mobile at all - "
        "buttons are overlapping, text is cut off, and I can't scroll through candidate lists. The previous "
        "version worked fine on mobile.",
        "2026-01-11T07:20:00Z", "2026-01-11T09:00:00Z", "open", "normal", "problem", 105, 202,
        ["ui", "mobile", "responsive"], "email",
    ),
    # Neutral: feature requests
    _ticket(
        6,
        "Request: Integration with LinkedIn Recruiter",
        "Now that you have the new ATS system, it would be great to have direct integration with LinkedIn "
        "Recruiter. We'd like to import candidate profiles directly and sync messaging. Is this on the roadmap?",
        "2026-01-10T10:00:00Z", "2026-01-10T11:30:00Z", "pending", "normal", "question", 106, 203,
        ["feature-request", "integration", "linkedin"], "web",
    ),
    _ticket(
        7,
        "Can we get custom pipeline stages?",
        "The default pipeline stages (Applied, Screening, Interview, Offer, Hired) don't match our process. We "
        "have a technical assessment stage and a culture fit interview. Would be helpful to customize these "
        "stages per job posting.",
        "2026-01-09T13:45:00Z", "2026-01-09T14:00:00Z", "pending", "normal", "question", 107, 201,
        ["feature-request", "pipeline", "customization"], "web",
    ),
    # Neutral: onboarding questions
    _ticket(
        8,
        "How to migrate existing candidates to new system?",
        "We have about 2000 candidates in spreadsheets from before we started using your platform. Is there a "
        "way to bulk import them into the new ATS? Looking for CSV import or API documentation.",
        "2026-01-08T09:30:00Z", "2026-01-08T10:15:00Z", "solved", "normal", "question", 108, 202,
        ["onboarding", "migration", "import"], "email",
    ),
    _ticket(
        9,
        "Training resources for new admin panel?",
        "Our HR team of 5 people needs to learn the new system. Are there video tutorials or documentation "
        "available? We'd also be interested in a live training session if you offer that.",
        "2026-01-07T15:00:00Z", "2026-01-07T16:30:00Z", "solved", "low", "question", 109, 203,
        ["onboarding", "training", "documentation"], "web",
    ),
    # Positive feedback
    _ticket(
        10,
        "Love the new analytics dashboard!",
        "Just wanted to say the new analytics section is fantastic! Being able to see time-to-hire metrics and "
        "source effectiveness in real-time has been a game changer for our recruiting strategy. The "
        "visualizations are beautiful and the export to PDF feature is exactly what we needed for board reports.",
        "2026-01-06T11:20:00Z", "2026-01-06T11:20:00Z", "solved", "low", "question", 110, 201,
        ["feedback", "positive", "analytics"], "web",
    ),
    _ticket(
        11,
        "Great job on the collaborative hiring features",
        "The new team collaboration features are excellent. Being able to @mention colleagues on candidate "
        "profiles and see everyone's feedback in one place has streamlined our hiring committee process. "
        "Interview scheduling with calendar sync also works perfectly. Thank you!",
        "2026-01-05T14:10:00Z", "2026-01-05T14:10:00Z", "solved", "low", "question", 111, 202,
        ["feedback", "positive", "collaboration"], "email",
    ),
    _ticket(
        12,
        "Impressed with the new candidate communication tools",
        "The automated email sequences and the new candidate portal are working great for us. Candidates can now "
        "check their application status themselves which has reduced our inbound inquiries by 40%. The email "
        "templates are professional and easy to customize. Well done on this release!",
        "2026-01-04T16:45:00Z", "2026-01-04T17:00:00Z", "solved", "low", "question", 112, 203,
        ["feedback", "positive", "communication"], "web",
    ),
]

MOCK_COMMENTS: Dict[int, List[Dict[str, Any]]] = {
    1: [
        _comment(1001, 201, "2026-01-15T10:00:00Z", "Thank you for reporting this. We're investigating the pipeline save issue. Can you tell us which browser you're using?"),
        _comment(1002, 101, "2026-01-15T10:30:00Z", "I'm using Chrome 120 on Windows 11. Same issue on Firefox too."),
        _comment(1003, 201, "2026-01-15T14:30:00Z", "We've identified the issue - it's related to a caching problem. A fix is being deployed today."),
    ],
    2: [
        _comment(2001, 202, "2026-01-14T12:30:00Z", "We apologize for the inconvenience. Our engineering team is looking into the bulk email error. As a workaround, could you try selecting fewer candidates at a time?"),
        _comment(2002, 102, "2026-01-14T13:00:00Z", "I tried with just 5 candidates and still get the error. This is really impacting our ability to communicate with applicants."),
    ],
    3: [
        _comment(3001, 203, "2026-01-13T09:00:00Z", "We're sorry to hear about the resume parsing issues. Could you share a few example resumes (with personal info redacted) so we can reproduce the problem?", "email"),
        _comment(3002, 103, "2026-01-13T09:45:00Z", "Attached 3 sample resumes. The dates and contact info are all mixed up after parsing.", "email"),
        _comment(3003, 203, "2026-01-13T12:00:00Z", "Thank you. We've reproduced the issue and it's now prioritized for the next patch release."),
    ],
    4: [
        _comment(4001, 201, "2026-01-12T15:00:00Z", "We appreciate your feedback about the dashboard. The quick actions menu has been moved to the top-right corner. We're also working on performance improvements. Would a quick walkthrough call help?"),
        _comment(4002, 104, "2026-01-12T15:45:00Z", "A walkthrough would help, yes. But please also consider the loading time - it takes 8-10 seconds to load now vs 2 seconds before."),
    ],
    5: [
        _comment(5001, 202, "2026-01-11T08:00:00Z", "Thank you for the mobile feedback. Mobile optimization is on our roadmap for Q1. In the meantime, we recommend using the desktop version for the best experience."),
        _comment(5002, 105, "2026-01-11T09:00:00Z", "Q1 is too long to wait. Mobile access was a key reason we chose your platform. Please prioritize this.", "email"),
    ],
    6: [
        _comment(6001, 203, "2026-01-10T10:45:00Z", "Great suggestion! LinkedIn Recruiter integration is something we're actively exploring. I'll add your vote to the feature request. Any specific workflows you'd want to see?"),
        _comment(6002, 106, "2026-01-10T11:30:00Z", "Mainly importing candidate profiles and syncing InMail conversations to the candidate timeline."),
    ],
    7: [
        _comment(7001, 201, "2026-01-09T14:00:00Z", "Custom pipeline stages is a popular request. We're planning to release this feature in version 2.1. I'll notify you when it's available."),
    ],
    8: [
        _comment(8001, 202, "2026-01-08T09:45:00Z", "Yes! We have a CSV import feature. Go to Settings > Data Import > Candidates. Here's our documentation: docs.example.com/import. The API is also available for larger migrations."),
        _comment(8002, 108, "2026-01-08T10:15:00Z", "Perfect, found it. The CSV template is very helpful. Thanks!", "email"),
    ],
    9: [
        _comment(9001, 203, "2026-01-07T15:30:00Z", "We have a full video tutorial series at learn.example.com and we'd be happy to schedule a live training session. I'll have our customer success team reach out to set up a time."),
        _comment(9002, 109, "2026-01-07T16:30:00Z", "That would be great. Looking forward to the training."),
    ],
    10: [
        _comment(10001, 201, "2026-01-06T11:45:00Z", "Thank you so much for the kind words! We're thrilled the analytics dashboard is helping your team. If you have any suggestions for additional metrics, we'd love to hear them!"),
    ],
    11: [
        _comment(11001, 202, "2026-01-05T14:30:00Z", "We really appreciate you taking the time to share this feedback! The collaboration features were a major focus for this release. Enjoy!", "email"),
    ],
    12: [
        _comment(12001, 203, "2026-01-04T17:00:00Z", "Wow, 40% reduction in inquiries is fantastic! Thank you for sharing these results. We'd love to feature your success story in our newsletter if you're interested."),
    ],
}

_TICKETS_ROUTE = re.compile(r"^/api/v2/tickets(?:\.json)?$")
_TICKET_ROUTE = re.compile(r"^/api/v2/tickets/(\d+)(?:\.json)?$")
_COMMENTS_ROUTE = re.compile(r"^/api/v2/tickets/(\d+)/comments(?:\.json)?$")
_SEARCH_ROUTE = re.compile(r"^/api/v2/search(?:\.json)?$")
_SEARCH_CREATED = re.compile(r"created>([\d-]+)")


def _parse_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _created_on_or_after(tickets: List[Dict[str, Any]], after: str) -> List[Dict[str, Any]]:
    cutoff = _parse_timestamp(after)
    return [ticket for ticket in tickets if _parse_timestamp(ticket["created_at"]) >= cutoff]


def _is_authenticated(header: Optional[str]) -> bool:
    if not header:
        return False
    if header.startswith("Bearer "):
        return True
    if header.startswith("Basic "):
        try:
            credentials = base64.b64decode(header.split(" ", 1)[1], validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError):
            return False
        return ":" in credentials
    return False


def _unauthorized(message: str) -> httpx.Response:
    return httpx.Response(401, json={"error": message}, headers={"WWW-Authenticate": 'Basic realm="Zendesk API"'})


def _page(key: str, records: List[Dict[str, Any]]) -> httpx.Response:
    return httpx.Response(
        200,
        json={key: records, "next_page": None, "previous_page": None, "count": len(records)},
    )


class MockHelpdesk:
    """Request handler holding a private copy of the fixture data.

    Attributes:
        tickets: Ticket records served by the listing and detail routes.
        comments: Comment threads keyed by ticket id.
        requests: Every request received, in order.
        failing_comment_ids: Ticket ids whose comment route answers HTTP 500.
    """

    def __init__(
        self,
        tickets: Optional[List[Dict[str, Any]]] = None,
        comments: Optional[Dict[int, List[Dict[str, Any]]]] = None,
    ):
        self.tickets = copy.deepcopy(MOCK_TICKETS if tickets is None else tickets)
        self.comments = copy.deepcopy(MOCK_COMMENTS if comments is None else comments)
        self.requests: List[httpx.Request] = []
        self.failing_comment_ids: set = set()

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        header = request.headers.get("Authorization")
        if not header:
            return _unauthorized("Authentication required")
        if not _is_authenticated(header):
            return _unauthorized("Invalid authentication")

        path = request.url.path
        params = request.url.params

        if _TICKETS_ROUTE.match(path):
            records = list(self.tickets)
            created_after = params.get("created_after")
            if created_after:
                records = _created_on_or_after(records, created_after)
            return _page("tickets", records)

        match = _COMMENTS_ROUTE.match(path)
        if match:
            ticket_id = int(match.group(1))
            if ticket_id in self.failing_comment_ids:
                return httpx.Response(500, json={"error": "InternalServerError"})
            return _page("comments", self.comments.get(ticket_id, []))

        match = _TICKET_ROUTE.match(path)
        if match:
            ticket_id = int(match.group(1))
            ticket = next((t for t in self.tickets if t["id"] == ticket_id), None)
            if ticket is None:
                return httpx.Response(404, json={"error": "RecordNotFound", "description": "Not found"})
            return httpx.Response(200, json={"ticket": ticket})

        if _SEARCH_ROUTE.match(path):
            query = params.get("query", "")
            results = list(self.tickets)
            if "type:ticket" in query:
                created = _SEARCH_CREATED.search(query)
                if created:
                    results = _created_on_or_after(results, created.group(1))
            return _page("results", results)

        return httpx.Response(404, json={"error": "InvalidEndpoint", "description": "Not found"})


def create_mock_transport(helpdesk: Optional[MockHelpdesk] = None) -> httpx.MockTransport:
    """Return an ``httpx`` transport that answers like the mock helpdesk."""
    return httpx.MockTransport(helpdesk or MockHelpdesk())
