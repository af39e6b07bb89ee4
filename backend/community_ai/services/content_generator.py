import logging
from typing import List, Optional, get_args

from community_ai.models import EnhancementContext, EventFormat, SkillLevel, Tone
from community_ai.schemas import CommunityDescription, CommunityGuidelines, CommunityPost, EventDescription
from community_ai.services.model_gateway import ModelGateway
from community_ai.validation import joined, require_choice, require_range, require_text

logger = logging.getLogger(__name__)

TONES = get_args(Tone)
EVENT_FORMATS = get_args(EventFormat)
SKILL_LEVELS = get_args(SkillLevel)
ENHANCEMENT_CONTENT_TYPES = ("description", "title", "rules", "agenda", "requirements", "general")
ENHANCEMENT_TYPES = ("improve", "expand", "simplify", "professional", "friendly", "persuasive", "custom")

IMPROVEMENT_INSTRUCTIONS = {
    "clarity": "Rewrite this content to be clearer and easier to understand while maintaining the original meaning",
    "engagement": "Rewrite this content to be more engaging and likely to generate responses and discussions",
    "professionalism": "Rewrite this content to be more professional and polished while keeping the core message",
    "brevity": "Rewrite this content to be more concise while preserving all important information",
}

ENHANCEMENT_SYSTEM_PROMPTS = {
    "description": "You are an expert content writer who specializes in creating engaging and compelling descriptions.",
    "title": "You are an expert copywriter who creates attention-grabbing, concise titles.",
    "rules": "You are an expert community manager who creates clear, fair, and effective community guidelines.",
    "agenda": "You are an expert event planner who creates well-structured, engaging event agendas.",
    "requirements": "You are an expert in creating clear, comprehensive requirement lists.",
    "general": "You are an expert content writer who improves text while maintaining the original intent.",
}

ENHANCEMENT_INSTRUCTIONS = {
    "improve": ("Improve this {kind} to make it more engaging and effective.", True),
    "expand": ("Expand this {kind} with more details and information while maintaining its core message.", True),
    "simplify": ("Make this {kind} more concise while preserving all important information.", True),
    "professional": ("Rewrite this {kind} to be more professional and polished while keeping the core message.", False),
    "friendly": ("Rewrite this {kind} to be more friendly and approachable while keeping the core message.", False),
    "persuasive": ("Rewrite this {kind} to be more persuasive and compelling while keeping the core message.", False),
}

CONTENT_TYPE_FOCUS = {
    "description": "Focus on making the description engaging, clear, and informative.",
    "title": "Ensure the title is concise, attention-grabbing, and accurately represents the content.",
    "rules": "Ensure rules are clear, fair, and enforceable.",
    "agenda": "Ensure the agenda is well-structured, logical, and includes appropriate time allocations.",
    "requirements": "Ensure requirements are clear, specific, and comprehensive.",
}

COMMUNITY_MANAGER_PROMPT = (
    "You are an expert community manager who creates engaging, valuable content that builds "
    "connections and encourages meaningful discussions."
)
EVENT_ORGANIZER_PROMPT = (
    "You are an expert event organizer who creates compelling, detailed event descriptions that "
    "attract the right audience and set clear expectations."
)
COMMUNITY_BUILDER_PROMPT = (
    "You are an expert community builder who creates clear, welcoming guidelines that foster "
    "positive interactions while maintaining community standards."
)
FACILITATOR_PROMPT = (
    "You are an expert facilitator who creates engaging discussion questions that bring "
    "communities together and encourage meaningful conversations."
)
EDITOR_PROMPT = "You are an expert editor who improves content while preserving the author's voice and intent."
HASHTAG_PROMPT = "You are an expert social media strategist who creates relevant, discoverable hashtags."
DESCRIPTION_WRITER_PROMPT = (
    "You are a community manager expert who writes compelling community descriptions that attract engaged members."
)


def build_community_post_prompt(
    topic: str,
    community_type: str,
    tone: str,
    target_audience: Optional[str] = None,
    keywords: Optional[List[str]] = None,
) -> str:
    return (
        f'Generate an engaging community post for a {community_type} community about "{topic}".\n\n'
        "Requirements:\n"
        f"- Tone: {tone}\n"
        f"- Target audience: {target_audience or 'general community members'}\n"
        f"- Include relevant keywords: {joined(keywords, 'none specified')}\n"
        "- Make it engaging and encourage discussion\n"
        "- Include 3-5 relevant hashtags\n"
        "- Keep it between 150-300 words\n\n"
        "The post should spark conversation and provide value to the community."
    )


def build_event_description_prompt(event_type: str, topic: str, duration: str, format: str, skill_level: str) -> str:
    return (
        f'Create a compelling event description for a {event_type} about "{topic}".\n\n'
        "Event details:\n"
        f"- Duration: {duration}\n"
        f"- Format: {format}\n"
        f"- Skill level: {skill_level}\n\n"
        "Include:\n"
        "- Engaging title and description\n"
        "- Detailed agenda with time slots\n"
        "- Clear target audience\n"
        "- Expected learning outcomes\n"
        "- Call-to-action for registration"
    )


def build_community_guidelines_prompt(
    community_name: str,
    community_type: str,
    values: List[str],
    specific_rules: Optional[List[str]] = None,
) -> str:
    lines = [
        f'Create comprehensive community guidelines for "{community_name}", a {community_type} community.',
        "",
        f"Community values: {joined(values, 'respect, inclusion')}",
    ]
    if specific_rules:
        lines.append(f"Specific rules to include: {', '.join(specific_rules)}")
    lines.extend(
        [
            "",
            "Generate:",
            "- 5-8 clear, actionable community rules with examples",
            "- A warm welcome message for new members",
            "- A code of conduct that reflects the community values",
            "- Make it friendly but clear about expectations",
        ]
    )
    return "\n".join(lines)


def build_discussion_starters_prompt(
    community_type: str,
    recent_topics: Optional[List[str]] = None,
    member_interests: Optional[List[str]] = None,
    count: int = 5,
) -> str:
    return (
        f"Generate {count} engaging discussion starter questions for a {community_type} community.\n\n"
        "Context:\n"
        f"- Recent topics discussed: {joined(recent_topics, 'none provided')}\n"
        f"- Member interests: {joined(member_interests, 'general')}\n\n"
        "Requirements:\n"
        "- Questions should be open-ended and thought-provoking\n"
        "- Encourage sharing experiences and opinions\n"
        "- Avoid controversial or divisive topics\n"
        "- Make them relevant to the community type\n"
        "- Include a mix of light and deeper discussion topics"
    )


def build_improve_content_prompt(content: str, improvement_type: str) -> str:
    return f'{IMPROVEMENT_INSTRUCTIONS[improvement_type]}:\n\n"{content}"'


def build_hashtags_prompt(content: str, max_count: int) -> str:
    return (
        f'Generate {max_count} relevant hashtags for this content: "{content}".\n'
        "Return only the hashtags, one per line, without the # symbol."
    )


def build_community_description_prompt(
    name: str,
    category: Optional[str] = None,
    tags: Optional[List[str]] = None,
    location: Optional[str] = None,
) -> str:
    focus = joined(tags, category or "shared interests")
    return (
        f'Generate a compelling community description for a community called "{name}" '
        f"based in {location or 'a location'}.\n\n"
        f"Category: {category or 'general'}\n"
        f"The community focuses on these interests: {focus}.\n\n"
        "Create a description that:\n"
        "- Is engaging and welcoming (2-3 sentences)\n"
        "- Explains what the community offers and the activities members can expect\n"
        "- Is professional but friendly in tone\n"
        "- Includes a call to action to join\n"
        f'- Uses the community name "{name}" naturally\n\n'
        "Also provide two alternative descriptions, up to 8 suggested tags, and a short "
        "target audience summary. Keep every description under 500 words."
    )


def build_enhance_content_prompt(
    content: str,
    content_type: str = "general",
    enhancement_type: str = "improve",
    tone: str = "friendly",
    context: Optional[EnhancementContext] = None,
    custom_prompt: Optional[str] = None,
) -> str:
    if enhancement_type == "custom":
        prompt = f'{custom_prompt}\n\nOriginal content:\n"{content}"'
    else:
        context_info = ""
        if context is not None:
            details = [
                f"- Name/Title: {context.name}" if context.name else "",
                f"- Category: {context.category}" if context.category else "",
                f"- Type: {context.type}" if context.type else "",
            ]
            details = [line for line in details if line]
            if details:
                context_info = "\nContext:\n" + "\n".join(details)
        instruction, uses_tone = ENHANCEMENT_INSTRUCTIONS[enhancement_type]
        prompt = instruction.format(kind=content_type) + context_info
        if uses_tone:
            prompt += f"\n\nUse a {tone} tone."
        prompt += f'\n\nOriginal content:\n"{content}"'

    if content_type in CONTENT_TYPE_FOCUS:
        prompt += f"\n\n{CONTENT_TYPE_FOCUS[content_type]}"
    prompt += "\n\nReturn only the enhanced content without any explanations, introductions, or quotation marks."
    return prompt


class ContentGenerator:
    def __init__(self, gateway: ModelGateway) -> None:
        self.gateway = gateway

    async def generate_community_post(
        self,
        topic: str,
        community_type: str,
        tone: str = "casual",
        target_audience: Optional[str] = None,
        keywords: Optional[List[str]] = None,
    ) -> CommunityPost:
        topic = require_text("topic", topic)
        community_type = require_text("community_type", community_type)
        require_choice("tone", tone, TONES)
        prompt = build_community_post_prompt(topic, community_type, tone, target_audience, keywords)
        return await self.gateway.generate_structured(prompt, CommunityPost, system_prompt=COMMUNITY_MANAGER_PROMPT)

    async def generate_event_description(
        self,
        event_type: str,
        topic: str,
        duration: str,
        format: str,
        skill_level: str,
    ) -> EventDescription:
        event_type = require_text("event_type", event_type)
        topic = require_text("topic", topic)
        duration = require_text("duration", duration)
        require_choice("format", format, EVENT_FORMATS)
        require_choice("skill_level", skill_level, SKILL_LEVELS)
        prompt = build_event_description_prompt(event_type, topic, duration, format, skill_level)
        return await self.gateway.generate_structured(prompt, EventDescription, system_prompt=EVENT_ORGANIZER_PROMPT)

    async def generate_community_guidelines(
        self,
        community_name: str,
        community_type: str,
        values: List[str],
        specific_rules: Optional[List[str]] = None,
    ) -> CommunityGuidelines:
        community_name = require_text("community_name", community_name)
        community_type = require_text("community_type", community_type)
        prompt = build_community_guidelines_prompt(community_name, community_type, values or [], specific_rules)
        return await self.gateway.generate_structured(
            prompt, CommunityGuidelines, system_prompt=COMMUNITY_BUILDER_PROMPT
        )

    async def generate_discussion_starters(
        self,
        community_type: str,
        recent_topics: Optional[List[str]] = None,
        member_interests: Optional[List[str]] = None,
        count: int = 5,
    ) -> str:
        community_type = require_text("community_type", community_type)
        require_range("count", count, 1, 20)
        prompt = build_discussion_starters_prompt(community_type, recent_topics, member_interests, count)
        return await self.gateway.generate_text(prompt, system_prompt=FACILITATOR_PROMPT)

    async def improve_content(self, content: str, improvement_type: str) -> str:
        content = require_text("content", content)
        require_choice("improvement_type", improvement_type, IMPROVEMENT_INSTRUCTIONS)
        return await self.gateway.generate_text(
            build_improve_content_prompt(content, improvement_type), system_prompt=EDITOR_PROMPT
        )

    async def generate_hashtags(self, content: str, max_count: int = 5) -> str:
        content = require_text("content", content)
        require_range("max_count", max_count, 1, 30)
        return await self.gateway.generate_text(build_hashtags_prompt(content, max_count), system_prompt=HASHTAG_PROMPT)

    async def generate_community_description(
        self,
        name: str,
        category: Optional[str] = None,
        tags: Optional[List[str]] = None,
        location: Optional[str] = None,
    ) -> CommunityDescription:
        name = require_text("name", name)
        prompt = build_community_description_prompt(name, category, tags, location)
        return await self.gateway.generate_structured(
            prompt,
            CommunityDescription,
            system_prompt=DESCRIPTION_WRITER_PROMPT,
            temperature=0.7,
        )

    async def enhance_content(
        self,
        content: str,
        content_type: str = "general",
        enhancement_type: str = "improve",
        tone: str = "friendly",
        context: Optional[EnhancementContext] = None,
        custom_prompt: Optional[str] = None,
    ) -> str:
        content = require_text("content", content)
        require_choice("content_type", content_type, ENHANCEMENT_CONTENT_TYPES)
        require_choice("enhancement_type", enhancement_type, ENHANCEMENT_TYPES)
        if enhancement_type == "custom":
            custom_prompt = require_text("custom_prompt", custom_prompt)
        prompt = build_enhance_content_prompt(content, content_type, enhancement_type, tone, context, custom_prompt)
        return await self.gateway.generate_text(prompt, system_prompt=ENHANCEMENT_SYSTEM_PROMPTS[content_type])
