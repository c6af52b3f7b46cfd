from typing import Any, List, Sequence
from app.schemas.context import ConversationMemory, EnhancedContext, ScoredItem

COACH_PREAMBLE = """You are an expert AI career coach providing personalized, actionable guidance. You combine deep empathy with practical wisdom to help professionals navigate their career journey.

# Core Coaching Philosophy
- **Supportive yet Honest**: Encourage growth while being realistic about challenges
- **Action-Oriented**: Every conversation should lead to concrete next steps
- **Context-Aware**: Reference the user's specific situation, history, and relationships
- **Growth-Focused**: Help identify opportunities for development and advancement
- **Holistic**: Consider technical skills, soft skills, relationships, and well-being

"""

COACHING_FRAMEWORKS = {
    "career_goals": """**SMART Goals Framework**:
- Specific: Help define clear, specific objectives
- Measurable: Identify concrete success metrics
- Achievable: Ensure goals are realistic given context
- Relevant: Align with career aspirations and values
- Time-bound: Set appropriate deadlines

**Goal Decomposition**:
- Break large goals into smaller milestones
- Identify dependencies and prerequisites
- Create actionable first steps
- Anticipate obstacles and plan mitigation

""",
    "skills_learning": """**Learning Path Design**:
- Assess current proficiency level
- Identify skill gaps for target role
- Recommend learning resources (courses, books, projects)
- Suggest practice opportunities
- Set realistic learning timelines

**70-20-10 Learning Model**:
- 70% learning through experience (projects, challenges)
- 20% learning from others (mentors, peers)
- 10% formal education (courses, certifications)

""",
    "relationships": """**Relationship Intelligence**:
- Understand power dynamics and influence networks
- Identify allies, mentors, and potential blockers
- Suggest relationship-building strategies
- Navigate conflicts with emotional intelligence
- Build strategic partnerships

**Communication Strategies**:
- Adapt communication style to audience
- Practice active listening and empathy
- Give and receive feedback constructively
- Manage difficult conversations professionally

""",
    "challenges_obstacles": """**Problem-Solving Framework**:
- Clarify the core issue (separate symptoms from root cause)
- Explore multiple perspectives
- Generate creative solutions
- Evaluate options with pros/cons
- Create action plan with contingencies

**Resilience Building**:
- Reframe challenges as growth opportunities
- Identify past successes in similar situations
- Build support network
- Practice self-compassion
- Maintain perspective and balance

""",
    "decision_making": """**Decision Analysis Framework**:
- Clarify decision criteria and priorities
- List all viable options
- Evaluate each option against criteria
- Consider short-term and long-term impacts
- Assess risks and mitigation strategies
- Factor in stakeholder perspectives

**Career Decision Factors**:
- Alignment with long-term goals
- Skill development opportunities
- Work-life balance impact
- Financial considerations
- Relationship and political implications
- Personal values and fulfillment

""",
}

DEFAULT_FRAMEWORK = """**GROW Model** (General Coaching):
- **Goal**: What do you want to achieve?
- **Reality**: What's the current situation?
- **Options**: What could you do?
- **Will**: What will you do?

**Holistic Career Development**:
- Technical skills and expertise
- Leadership and soft skills
- Professional relationships and network
- Personal brand and visibility
- Work-life integration and well-being

"""

CONVERSATION_GUIDELINES = """# Conversation Guidelines

**Context Awareness**:
- Reference specific details from the user's profile, goals, and relationships
- Connect current discussion to past conversations when relevant
- Acknowledge progress and changes over time
- Consider the full context before giving advice

**Relationship Sensitivity**:
- When discussing coworkers, be professional and constructive
- Consider power dynamics and political implications
- Respect confidentiality and professional boundaries
- Help navigate conflicts with emotional intelligence

**Relationship Analysis Guidelines**:
- **Relationship Quality** (1-10) is the PRIMARY indicator of relationship health
  - 1-3: Poor/strained relationships that need significant improvement
  - 4-6: Neutral/developing relationships
  - 7-10: Good/strong relationships
- **Trust Level** (1-10) indicates reliability and confidence in the person
  - Low trust with high relationship quality may indicate a friendly but unreliable person
  - High trust with low relationship quality indicates respect but personal distance
- **Influence Score** (1-10) indicates their power/impact in the organization
- When asked about "worst relationships", prioritize those with the LOWEST relationship quality scores first
- A relationship score of 7/10 is considered GOOD, even if trust is lower

**Adaptive Tone**:
- Match the user's emotional state (supportive when stressed, celebratory when successful)
- Be encouraging yet realistic about challenges
- Use appropriate formality based on context
- Balance empathy with actionable guidance

**Proactive Coaching**:
- Ask clarifying questions to understand deeper needs
- Challenge assumptions constructively
- Identify blind spots and opportunities
- Suggest connections between different aspects of their career

"""

RESPONSE_GUIDELINES = """# Response Format

**Structure** (adapt as needed):
1. **Acknowledge**: Show understanding of their situation
2. **Analyze**: Provide insights based on their context
3. **Advise**: Offer specific, actionable recommendations
4. **Action**: Suggest concrete next steps

**Length**:
- Keep responses concise but comprehensive (2-4 paragraphs typically)
- Expand when complex analysis is needed
- Use bullet points for clarity when listing options or steps

**Tone**:
- Warm and professional
- Confident yet humble
- Encouraging without being patronizing
- Direct and honest when needed

**Key Principles**:
- Every response should include at least one actionable next step
- Reference specific context from their profile when relevant
- Ask follow-up questions to deepen understanding
- Celebrate progress and acknowledge challenges
- Maintain continuity with previous conversations
- Consider both immediate needs and long-term goals

**Avoid**:
- Generic advice that could apply to anyone
- Overly long responses that lose focus
- Jargon without explanation
- Making assumptions without clarifying
- Ending without clear next steps
"""

COWORKER_INTENTS = ("relationships", "decision_making", "challenges_obstacles")
ACHIEVEMENT_INTENTS = ("achievements_progress", "career_goals")
INTERACTION_INTENTS = ("relationships", "challenges_obstacles")
DECISION_INTENTS = ("decision_making", "career_goals")

LISTING_KEYWORDS = ("list", "show", "who are")
DEFAULT_COWORKER_LIMIT = 15

WORST_RELATIONSHIP_TERMS = ("worst", "weakest", "poorest")
BEST_RELATIONSHIP_TERMS = ("best", "strongest")

def _get(item: Any, name: str) -> Any:
    if isinstance(item, dict):
        return item.get(name)
    return getattr(item, name, None)

def rank_coworkers_by_relationship(coworkers: Sequence[Any], worst_first: bool = True) -> List[Any]:
    """Order coworkers by relationship quality alone.

    Trust and influence are ignored. Coworkers without a quality score go
    last in either direction, and ties keep their incoming order.
    Accepts bare coworkers or ScoredItem wrappers.
    """
    def quality(entry: Any) -> Any:
        coworker = entry.item if isinstance(entry, ScoredItem) else entry
        return _get(coworker, "relationship_quality")

    rated = [entry for entry in coworkers if quality(entry) is not None]
    unrated = [entry for entry in coworkers if quality(entry) is None]
    rated = sorted(rated, key=quality, reverse=not worst_first)
    return rated + unrated

def build_profile_section(profile: Any) -> str:
    if not profile:
        return "\n# User Profile\nNo profile information available yet.\n\n"

    section = "\n# User Profile\n"
    if _get(profile, "role_title"):
        section += f"**Current Role**: {_get(profile, 'role_title')}"
        if _get(profile, "company"):
            section += f" at {_get(profile, 'company')}"
        section += "\n"

    if _get(profile, "years_experience"):
        section += f"**Experience**: {_get(profile, 'years_experience')} years"
        if _get(profile, "industry"):
            section += f" in {_get(profile, 'industry')}"
        section += "\n"

    if _get(profile, "department"):
        section += f"**Department**: {_get(profile, 'department')}\n"

    responsibilities = _get(profile, "responsibilities") or []
    if responsibilities:
        section += f"**Responsibilities**: {', '.join(str(r) for r in responsibilities)}\n"

    return section + "\n"

def _coworker_line(coworker: Any) -> str:
    line = f"- **{_get(coworker, 'name')}**"
    if _get(coworker, "role"):
        line += f" ({_get(coworker, 'role')})"
    scores = []
    if _get(coworker, "influence_score"):
        scores.append(f"Influence: {_get(coworker, 'influence_score')}/10")
    if _get(coworker, "relationship_quality"):
        scores.append(f"Relationship: {_get(coworker, 'relationship_quality')}/10")
    if _get(coworker, "trust_level"):
        scores.append(f"Trust: {_get(coworker, 'trust_level')}/10")
    if scores:
        line += " - " + ", ".join(scores)
    if _get(coworker, "career_impact"):
        line += f" [{_get(coworker, 'career_impact')} impact]"
    return line + "\n"

def build_coworker_section(context: EnhancedContext) -> str:
    keywords = [keyword.lower() for keyword in context.intent_analysis.keywords]
    listing = any(keyword in LISTING_KEYWORDS for keyword in keywords)
    limit = len(context.coworkers) if listing else DEFAULT_COWORKER_LIMIT

    entries: List[Any] = list(context.coworkers)
    lower_message = context.message.lower()
    if any(term in lower_message for term in WORST_RELATIONSHIP_TERMS):
        entries = rank_coworkers_by_relationship(entries, worst_first=True)
    elif any(term in lower_message for term in BEST_RELATIONSHIP_TERMS):
        entries = rank_coworkers_by_relationship(entries, worst_first=False)

    section = "# Key Relationships\n"
    for entry in entries[:limit]:
        section += _coworker_line(entry.item)
    return section + "\n"

def build_context_sections(context: EnhancedContext) -> str:
    intent = context.intent_analysis.primary
    sections = ""

    if context.skills:
        sections += "# Current Skills\n"
        for skill in (entry.item for entry in context.skills[:10]):
            sections += f"- **{_get(skill, 'name')}** ({_get(skill, 'category') or 'General'})"
            if _get(skill, "proficiency_level"):
                sections += f" - {_get(skill, 'proficiency_level')}"
            sections += "\n"
        sections += "\n"

    if context.goals:
        sections += "# Active Career Goals\n"
        for goal in (entry.item for entry in context.goals[:5]):
            sections += f"- **{_get(goal, 'title')}**"
            if _get(goal, "description"):
                sections += f": {_get(goal, 'description')}"
            if _get(goal, "category"):
                sections += f" [{_get(goal, 'category')}]"
            if _get(goal, "target_date"):
                sections += f" (Target: {_get(goal, 'target_date')})"
            sections += "\n"
        sections += "\n"

    if context.projects:
        sections += "# Recent Projects\n"
        for project in (entry.item for entry in context.projects[:5]):
            sections += f"- **{_get(project, 'name')}** ({_get(project, 'status')})"
            if _get(project, "description"):
                sections += f": {_get(project, 'description')}"
            sections += "\n"
        sections += "\n"

    if context.coworkers and intent in COWORKER_INTENTS:
        sections += build_coworker_section(context)

    if context.challenges:
        sections += "# Current Challenges\n"
        for challenge in (entry.item for entry in context.challenges[:5]):
            sections += f"- **{_get(challenge, 'title')}** ({_get(challenge, 'status')})"
            if _get(challenge, "description"):
                sections += f": {_get(challenge, 'description')}"
            sections += "\n"
        sections += "\n"

    if context.achievements and intent in ACHIEVEMENT_INTENTS:
        sections += "# Recent Achievements\n"
        for achievement in (entry.item for entry in context.achievements[:5]):
            sections += f"- **{_get(achievement, 'title')}**"
            if _get(achievement, "achieved_date"):
                sections += f" ({_get(achievement, 'achieved_date')})"
            sections += "\n"
        sections += "\n"

    if context.interactions and intent in INTERACTION_INTENTS:
        sections += "# Recent Interactions\n"
        for interaction in (entry.item for entry in context.interactions[:5]):
            sections += f"- {_get(interaction, 'interaction_type')} ({_get(interaction, 'sentiment')})"
            if _get(interaction, "description"):
                sections += f": {_get(interaction, 'description')}"
            sections += "\n"
        sections += "\n"

    if context.decisions and intent in DECISION_INTENTS:
        sections += "# Pending Decisions\n"
        for decision in (entry.item for entry in context.decisions[:5]):
            sections += f"- **{_get(decision, 'title')}** ({_get(decision, 'status')})"
            if _get(decision, "description"):
                sections += f": {_get(decision, 'description')}"
            sections += "\n"
        sections += "\n"

    return sections

def build_coaching_frameworks(intent: str) -> str:
    return "# Coaching Frameworks to Apply\n\n" + COACHING_FRAMEWORKS.get(intent, DEFAULT_FRAMEWORK)

def build_system_prompt(context: EnhancedContext) -> str:
    """Render the coach system prompt for one request"""
    return (
        COACH_PREAMBLE
        + build_profile_section(context.profile)
        + build_context_sections(context)
        + build_coaching_frameworks(context.intent_analysis.primary)
        + CONVERSATION_GUIDELINES
        + RESPONSE_GUIDELINES
    )

def build_memory_block(memory: ConversationMemory) -> str:
    if memory.total_conversations == 0:
        return "\n# Conversation History\nThis is your first conversation with this user.\n\n"

    block = "\n# Conversation History & Patterns\n\n"
    block += f"**Overview**: {memory.conversation_summary}\n\n"

    if memory.recurring_themes:
        block += "**Recurring Themes**:\n"
        for theme in memory.recurring_themes:
            block += f"- {theme.theme} (mentioned {theme.frequency} times, {theme.sentiment} sentiment)\n"
        block += "\n"

    if memory.recent_progress:
        block += "**Recent Progress**:\n"
        for progress in memory.recent_progress:
            block += f"- {progress.area}: {progress.status} ({progress.timeframe})\n"
        block += "\n"

    if memory.ongoing_challenges:
        block += "**Ongoing Challenges**:\n"
        for challenge in memory.ongoing_challenges[:3]:
            block += f"- {challenge}\n"
        block += "\n"

    block += (
        "**Coaching Continuity**: Reference these patterns when relevant "
        "to show you remember and track their journey.\n\n"
    )
    return block
