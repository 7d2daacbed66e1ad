"""
Prompt Templates for the Funding Follow-Up Engine.

Holds the system instructions for lead enrichment and message generation,
the per-purpose descriptions, and the deterministic fallback messages used
when no generative provider answers.
"""

import json
from enum import Enum
from typing import Any, Dict, Optional


class PromptType(Enum):
    """Types of prompts."""
    LEAD_ENRICHMENT = "lead_enrichment"
    MESSAGE_GENERATION = "message_generation"


DEFAULT_COMPANY = "Today Capital Group"


class PromptTemplates:
    """
    Manages prompt templates for enrichment and outreach.

    Company name placeholders are substituted at lookup time so the same
    templates serve any configured sender.
    """

    SYSTEM_PROMPTS = {
        PromptType.LEAD_ENRICHMENT: """You are an expert business funding analyst for a commercial lending company called Today Capital Group. Your job is to analyze loan applications and provide actionable insights.

Analyze the provided lead data and return a JSON object with:
- leadScore (1-100): Based on likelihood to fund and deal quality
- qualityTier: "hot" (80-100), "warm" (50-79), or "cold" (1-49)
- insights: Array of 3-5 key observations about this lead
- riskFactors: Array of potential concerns or red flags
- recommendedProducts: Array of funding products that fit (SBA Loan, Business Line of Credit, MCA, Equipment Financing, Invoice Factoring, Revenue-Based Financing)
- urgencyLevel: Based on their stated funding timeline ("immediate", "high", "medium" or "low")
- estimatedFundingRange: {min, max} realistic funding amounts based on their profile
- nextBestAction: Single most important next step

Scoring factors to consider:
- Time in business (longer = better, 2+ years ideal)
- Monthly revenue (higher = better, $50k+ is strong)
- Credit score (650+ is good, 720+ is excellent)
- Industry risk level
- Requested amount vs revenue ratio
- Whether they have existing MCA/loans
- Completeness of application
- Stated urgency

Return ONLY valid JSON, no markdown or explanation.""",

        PromptType.MESSAGE_GENERATION: """You are a skilled sales development representative for Today Capital Group, a business funding company. Your job is to write personalized, warm, and professional messages that feel human - not like templates.

Guidelines:
- Be conversational but professional
- Reference specific details from their application to show you've reviewed it
- Keep SMS messages under 160 characters when possible, max 320
- Keep email bodies concise (2-3 short paragraphs max)
- Always include a clear call-to-action
- Never use generic phrases like "Dear Valued Customer"
- Use their first name
- Mention their business name when natural
- For urgent leads, convey urgency without being pushy
- Avoid using jargon or complex financial terms

Return a JSON object with:
- subject (for email only): Compelling, personalized subject line
- body: The message content
- tone: "professional", "friendly", or "urgent"
- followUpTiming: When to follow up if no response (e.g., "2 days", "1 week")

Return ONLY valid JSON, no markdown or explanation.""",
    }

    PURPOSE_DESCRIPTIONS = {
        "initial_followup": "This is the first follow-up after they submitted an application. Welcome them and confirm next steps.",
        "document_reminder": "They started an application but haven't uploaded bank statements yet. Gently remind them.",
        "stale_lead": "They showed interest but haven't responded in a while. Re-engage them.",
        "application_incomplete": "They started the intake form but didn't complete it. Encourage them to finish.",
        "bank_statement_needed": "Their application is complete but we need bank statements to proceed.",
        "approval_notification": "Great news - they've been pre-approved! Share the excitement and next steps.",
        "custom": "Send a personalized message.",
    }

    USER_TEMPLATES = {
        "lead_enrichment": """Analyze this business funding lead and provide enrichment data:

{profile}

Current date: {current_date}
Application age: {application_age}""",

        "message_generation": """Generate a {channel} message for this lead.

PURPOSE: {purpose_description}

LEAD PROFILE:
{profile}

SENDER INFO:
- Agent Name: {agent_name}
- Company: {company_name}
{additional_context}
Remember:
- {length_rule}
- Use their first name: {first_name}
- Their business: {business_name}""",
    }

    # Fallback messages per purpose: sms text plus email subject/body.
    FALLBACK_TEMPLATES: Dict[str, Dict[str, Any]] = {
        "initial_followup": {
            "sms": "Hi {first_name}! Thanks for your interest in funding for {business_name}. I'd love to discuss your options. When's a good time to chat? - {sender}",
            "email": {
                "subject": "{first_name}, let's discuss funding for {business_name}",
                "body": "Hi {first_name},\n\nThank you for reaching out about business funding for {business_name}. I've reviewed your application and would love to discuss the options available to you.\n\nWhen would be a good time for a quick call?\n\nBest regards,\n{sender}",
            },
        },
        "document_reminder": {
            "sms": "Hi {first_name}! Just a quick reminder - we still need your bank statements to move forward with funding for {business_name}. Reply if you need help! - {sender}",
            "email": {
                "subject": "Quick reminder: Bank statements needed for {business_name}",
                "body": "Hi {first_name},\n\nI wanted to follow up on your funding application for {business_name}. To move forward, we just need your recent bank statements.\n\nYou can easily upload them through our portal, or simply reply to this email with the documents attached.\n\nLet me know if you have any questions!\n\n{sender}",
            },
        },
        "stale_lead": {
            "sms": "Hi {first_name}! Still interested in funding for {business_name}? Rates are competitive right now. Let me know if you'd like to reconnect! - {sender}",
            "email": {
                "subject": "{first_name}, checking in on your funding needs",
                "body": "Hi {first_name},\n\nI wanted to check in regarding your interest in business funding for {business_name}. Circumstances change, and if you're still exploring options, I'd be happy to help.\n\nCurrent rates are quite competitive. Would you like to schedule a quick call to discuss?\n\nBest,\n{sender}",
            },
        },
        "application_incomplete": {
            "sms": "Hi {first_name}! You're almost there - just a few more details needed to complete your {business_name} funding application. Can I help? - {sender}",
            "email": {
                "subject": "Complete your application for {business_name} - almost there!",
                "body": "Hi {first_name},\n\nYou're so close! Your funding application for {business_name} is partially complete. Just a few more details and we can get you matched with the right funding options.\n\nClick here to finish: [Application Link]\n\nNeed help? Just reply to this email.\n\n{sender}",
            },
        },
        "bank_statement_needed": {
            "sms": "Hi {first_name}! Great news - your application for {business_name} looks good! We just need bank statements to finalize. Can you send those over? - {sender}",
            "email": {
                "subject": "Last step for {business_name}: Bank statements needed",
                "body": "Hi {first_name},\n\nExciting news! Your application for {business_name} is progressing well. The final step is to provide your recent bank statements so our underwriting team can finalize your funding options.\n\nYou can upload them securely through our portal or attach them to this email.\n\nLooking forward to helping you secure funding!\n\n{sender}",
            },
        },
        "approval_notification": {
            "sms": "Great news {first_name}! {business_name} has been pre-approved for funding! Let's discuss your options. When can we chat? - {sender}",
            "email": {
                "subject": "Congratulations {first_name}! {business_name} is pre-approved!",
                "body": "Hi {first_name},\n\nI'm thrilled to share that {business_name} has been pre-approved for business funding!\n\nI'd love to walk you through the available options and next steps. When would be a good time for a brief call?\n\nCongratulations again!\n\n{sender}",
            },
        },
        "custom": {
            "sms": "Hi {first_name}! Following up about funding for {business_name}. Any questions I can help with? - {sender}",
            "email": {
                "subject": "Following up - {business_name} funding inquiry",
                "body": "Hi {first_name},\n\nI wanted to reach out regarding your funding inquiry for {business_name}. Please let me know if you have any questions or if there's anything I can help with.\n\nBest regards,\n{sender}",
            },
        },
    }

    @classmethod
    def get_system_prompt(
        cls,
        prompt_type: PromptType,
        company_name: str = DEFAULT_COMPANY
    ) -> str:
        """
        Get system prompt for a given type.

        Args:
            prompt_type: Type of prompt
            company_name: Company name to use

        Returns:
            Formatted system prompt
        """
        prompt = cls.SYSTEM_PROMPTS[prompt_type]
        return prompt.replace(DEFAULT_COMPANY, company_name)

    @classmethod
    def get_purpose_description(cls, purpose: str, custom_context: Optional[str] = None) -> str:
        """Describe a contact purpose; the custom purpose uses the caller's context."""
        if purpose == "custom" and custom_context:
            return custom_context
        return cls.PURPOSE_DESCRIPTIONS.get(purpose, cls.PURPOSE_DESCRIPTIONS["custom"])

    @classmethod
    def build_enrichment_prompt(
        cls,
        profile: Dict[str, Any],
        current_date: str,
        application_age: str
    ) -> str:
        """
        Build the lead enrichment user prompt.

        Args:
            profile: Identity-stripped lead profile
            current_date: Date of the analysis
            application_age: Human-readable application age

        Returns:
            Formatted prompt
        """
        return cls.USER_TEMPLATES["lead_enrichment"].format(
            profile=json.dumps(profile, indent=2, default=str),
            current_date=current_date,
            application_age=application_age,
        )

    @classmethod
    def build_message_prompt(
        cls,
        profile: Dict[str, Any],
        channel: str,
        purpose: str,
        first_name: str,
        business_name: str,
        agent_name: Optional[str] = None,
        company_name: str = DEFAULT_COMPANY,
        custom_context: Optional[str] = None
    ) -> str:
        """
        Build the message generation user prompt.

        Args:
            profile: Lead profile
            channel: "sms" or "email"
            purpose: Contact purpose
            first_name: Recipient first name
            business_name: Recipient business name
            agent_name: Sending agent, if any
            company_name: Sending company
            custom_context: Extra free-text context

        Returns:
            Formatted prompt
        """
        if channel == "sms":
            length_rule = "Keep it under 320 characters, ideally under 160"
        else:
            length_rule = "Keep email concise, 2-3 short paragraphs"

        additional_context = f"\nADDITIONAL CONTEXT: {custom_context}\n" if custom_context else ""

        return cls.USER_TEMPLATES["message_generation"].format(
            channel=channel.upper(),
            purpose_description=cls.get_purpose_description(purpose, custom_context),
            profile=json.dumps(profile, indent=2, default=str),
            agent_name=agent_name or f"The Team at {company_name}",
            company_name=company_name,
            additional_context=additional_context,
            length_rule=length_rule,
            first_name=first_name,
            business_name=business_name,
        )

    @classmethod
    def get_fallback_template(cls, purpose: str) -> Dict[str, Any]:
        """Fallback templates for a purpose; unknown purposes use the custom set."""
        return cls.FALLBACK_TEMPLATES.get(purpose, cls.FALLBACK_TEMPLATES["custom"])

    @classmethod
    def render_fallback(
        cls,
        purpose: str,
        channel: str,
        first_name: str,
        business_name: str,
        sender: str
    ) -> Dict[str, str]:
        """
        Render the fallback message for a purpose and channel.

        Returns:
            {"body": ...} for sms, {"subject": ..., "body": ...} for email
        """
        template = cls.get_fallback_template(purpose)
        values = {"first_name": first_name, "business_name": business_name, "sender": sender}

        if channel == "sms":
            return {"body": template["sms"].format(**values)}
        return {
            "subject": template["email"]["subject"].format(**values),
            "body": template["email"]["body"].format(**values),
        }
