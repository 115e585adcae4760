"""
Prompt templates for the sales assistant.
"""

import json
from typing import Any, Sequence

from .models import INDUSTRY_CATEGORIES, ChatContext

CRM_SYSTEM_PROMPT = """You are the assistant of Salesdesk, a contact management system for Malaysian sales professionals.

You help users:
1. Find and manage contacts (by name, company, industry)
2. Track interactions and follow-ups
3. Manage sales opportunities and the pipeline
4. Schedule reminders and tasks
5. Analyze sales performance
6. Give business insight for the Malaysian market

Guidelines:
- Be concise and professional
- Use Malaysian Ringgit (RM) for currency
- Answer in English or Bahasa Malaysia, matching the user
- Format contact lists clearly
- For more than 50 records, summarize and offer to paginate
- Protect sensitive customer information
- Always confirm before suggesting changes to data"""

CONTEXT_CONTACT_LIMIT = 10
CONTEXT_INTERACTION_LIMIT = 5


def _contact_line(contact: dict[str, Any], with_email: bool = True) -> str:
    parts = [
        contact.get("name") or "Unknown",
        contact.get("company") or "No company",
        contact.get("phone") or "No phone",
    ]
    if with_email:
        parts.append(contact.get("email") or "No email")
    return "- " + " | ".join(parts)


def user_message_with_context(message: str, context: ChatContext) -> str:
    """Append the tenant data blocks the message refers to."""
    sections = [message]

    if context.contacts:
        lines = ["[Relevant Contacts Context]"]
        if len(context.contacts) <= CONTEXT_CONTACT_LIMIT:
            lines += [_contact_line(c) for c in context.contacts]
        else:
            lines.append(
                f"Total: {len(context.contacts)} contacts found. "
                f"Showing first {CONTEXT_CONTACT_LIMIT}:"
            )
            lines += [
                _contact_line(c, with_email=False)
                for c in context.contacts[:CONTEXT_CONTACT_LIMIT]
            ]
        sections.append("\n".join(lines))

    if context.stats:
        sections.append("[Current Statistics]\n" + json.dumps(context.stats, indent=2))

    if context.recent_interactions:
        lines = ["[Recent Interactions]"]
        for item in context.recent_interactions[:CONTEXT_INTERACTION_LIMIT]:
            lines.append(
                f"- {item.get('interaction_date')}: {item.get('type')} with "
                f"{item.get('contact_name') or 'a contact'} - {item.get('notes') or 'No notes'}"
            )
        sections.append("\n".join(lines))

    return "\n\n".join(sections)


def spreadsheet_prompt(headers: Sequence[str], sample_rows: Sequence[dict[str, Any]]) -> str:
    return f"""Analyze this spreadsheet and identify the column mappings for a contact import.

Headers: {json.dumps(list(headers))}

Sample data (first {len(sample_rows)} rows):
{json.dumps(list(sample_rows), indent=2, default=str)}

Identify which column maps to:
- name (contact full name)
- phone (phone number)
- email (email address)
- company (company name)
- industry (business industry)
- position (job title)
- notes (additional notes)

Also detect the phone number format (Malaysian: +60, 01x) and data quality issues.

Respond in JSON:
{{
  "columnMappings": {{
    "name": "column name or null",
    "phone": "column name or null",
    "email": "column name or null",
    "company": "column name or null",
    "industry": "column name or null",
    "position": "column name or null",
    "notes": "column name or null"
  }},
  "phoneFormat": "detected format",
  "dataQualityIssues": ["list of issues"],
  "suggestedCleanups": ["list of suggestions"],
  "confidence": 0.0
}}"""


NAMECARD_PROMPT = """Extract all text from this business card image and structure it as JSON:
{
  "name": "full name",
  "position": "job title",
  "company": "company name",
  "phone": "phone number (prefer mobile)",
  "email": "email address",
  "address": "address if visible",
  "website": "website if visible",
  "additional_phones": ["other phone numbers"],
  "raw_text": "all text found on the card",
  "confidence": 0.0,
  "language": "detected language"
}

Handle Malaysian phone formats (+60, 01x-xxx xxxx).
If information is unclear, use null."""


def followup_prompt(contact: dict[str, Any], interactions: Sequence[dict[str, Any]]) -> str:
    return f"""Based on this contact and interaction history, suggest follow-up actions.

Contact:
{json.dumps(contact, indent=2, default=str)}

Recent Interactions:
{json.dumps(list(interactions[:5]), indent=2, default=str)}

Suggest 2-3 follow-up actions, each with a suggested date and time, a type
(call, email, meeting, whatsapp), a short message template and a priority
(high, medium, low). Consider Malaysian business culture and business hours.

Respond in JSON:
{{
  "suggestions": [
    {{
      "action": "description",
      "type": "call|email|meeting|whatsapp",
      "suggestedDate": "YYYY-MM-DD",
      "suggestedTime": "HH:mm",
      "priority": "high|medium|low",
      "messageTemplate": "brief message"
    }}
  ]
}}"""


def categorize_prompt(contact: dict[str, Any]) -> str:
    email = contact.get("email") or ""
    domain = email.split("@", 1)[1] if "@" in email else "Unknown"
    categories = "\n".join(f"- {c}" for c in INDUSTRY_CATEGORIES)
    return f"""Categorize this business contact into an industry:

Name: {contact.get("name")}
Company: {contact.get("company") or "Unknown"}
Position: {contact.get("position") or "Unknown"}
Email domain: {domain}

Industry categories:
{categories}

Respond with JSON:
{{
  "category": "category name",
  "confidence": 0.0,
  "reasoning": "brief explanation"
}}"""
