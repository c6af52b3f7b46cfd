import json
import time
from typing import Any, AsyncIterator, Dict, List, Optional
from loguru import logger
import openai
from openai import AsyncOpenAI
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type
)

from app.config.settings import settings
from app.schemas.extraction import EXTRACTION_KEYS, ExistingSnapshot, ExtractedEntities

EXTRACTION_PROMPT = """You are an AI assistant that extracts structured career information from conversations.

Analyze the conversation and extract any NEW information about:
1. **Skills** - Technical or soft skills mentioned (with proficiency if stated)
2. **Goals** - Career objectives or aspirations
3. **Projects** - Work projects or initiatives
4. **Challenges** - Current obstacles or difficulties
5. **Achievements** - Accomplishments or milestones
6. **Profile Updates** - Changes to role, company, experience, etc.
7. **Co-workers** - People mentioned by name who work with the user
8. **Interactions** - Specific interactions with co-workers (meetings, conflicts, collaborations)
9. **Decisions** - Important career decisions being considered or made

IMPORTANT RULES:
- Only extract information that is EXPLICITLY stated or strongly implied
- Do NOT extract information that was already known (check existing context)
- **For skills**: If the user mentions an EXISTING skill with NEW proficiency information, suggest it as a skill update (not a new skill)
- **For skills**: Only suggest NEW skills if they are not already in the user's skill list
- **For co-workers**: Extract names mentioned in professional context (colleagues, managers, team members) ONLY from the USER's message, NOT from the assistant's response
- **For co-workers**: Do NOT extract co-workers that are already in the existing context - they are already known
- **For co-workers**: If the assistant is simply listing existing co-workers, do NOT extract them as new co-workers
- **For interactions**: Only extract if specific interaction details are mentioned (not just name drops)
- Include the exact quote or context where the information was mentioned
- For skills, estimate proficiency (1-5) based on how they describe their experience
- For goals, categorize as: career_growth, skill_development, leadership, work_life_balance, other
- For challenges, categorize as: technical, interpersonal, workload, career_direction, other
- For co-workers, estimate influence_score (1-10), relationship_quality (1-10), trust_level (1-10) if mentioned
- Return EMPTY arrays if no new information is found

Return a JSON object with this exact structure:
{
  "skills": [
    {"skill_name": "string", "category": "technical|soft_skill|domain_knowledge|tool|language|framework", "proficiency_level": 1-5, "context": "exact quote or context from conversation"}
  ],
  "skillUpdates": [
    {"skill_name": "string (must match existing skill)", "proficiency_level": 1-5, "context": "exact quote or context from conversation"}
  ],
  "goals": [
    {"title": "string", "description": "string", "category": "career_growth|skill_development|leadership|work_life_balance|other", "target_date": "YYYY-MM-DD (optional)", "context": "exact quote or context"}
  ],
  "projects": [
    {"project_name": "string", "description": "string", "role": "string", "technologies": ["string"], "start_date": "YYYY-MM-DD (optional)", "end_date": "YYYY-MM-DD (optional)", "context": "exact quote or context"}
  ],
  "challenges": [
    {"title": "string", "description": "string", "category": "technical|interpersonal|workload|career_direction|other", "context": "exact quote or context"}
  ],
  "achievements": [
    {"title": "string", "description": "string", "date": "YYYY-MM-DD (optional)", "context": "exact quote or context"}
  ],
  "profileUpdates": [
    {"field": "role_title|company|department|years_experience|industry|responsibilities", "value": "string or array of strings", "context": "exact quote or context"}
  ],
  "coworkers": [
    {"name": "string (person's name)", "role": "string (optional)", "department": "string (optional)", "seniority_level": "junior|mid|senior|lead|manager|director|vp|executive (optional)", "relationship": "string (optional)", "influence_score": "1-10 (optional, how much power they have)", "relationship_quality": "1-10 (optional, how good the relationship is)", "trust_level": "1-10 (optional, how trustworthy they are)", "career_impact": "positive|negative|neutral (optional)", "personality_traits": {}, "working_style": {}, "context": "exact quote or context"}
  ],
  "interactions": [
    {"coworker_name": "string (must match a co-worker name)", "interaction_type": "meeting|conflict|collaboration|feedback|casual|email|chat|phone", "sentiment": "positive|negative|neutral", "impact_on_career": "helped|hindered|neutral (optional)", "description": "string (what happened)", "outcomes": "string (optional)", "interaction_date": "YYYY-MM-DD (optional)", "context": "exact quote or context"}
  ],
  "decisions": [
    {"title": "string (decision being made)", "description": "string (details)", "reasoning": "string (optional)", "expected_outcome": "string (optional)", "related_coworkers": ["string"], "related_goals": ["string"], "impact_score": "1-10 (optional)", "confidence_level": "1-10 (optional)", "context": "exact quote or context"}
  ]
}"""

def strip_code_fences(text: str) -> str:
    """Remove a surrounding ```json ... ``` block if the model added one"""
    text = text.strip()
    if text.startswith("```json"):
        text = text.replace("```json", "", 1)
        if "```" in text:
            text = text.split("```")[0]
    elif text.startswith("```"):
        text = text.replace("```", "", 1)
        if "```" in text:
            text = text.split("```")[0]
    return text.strip()

def parse_extraction(content: Optional[str]) -> ExtractedEntities:
    """Parse the extraction reply, replacing any missing or malformed array with []"""
    if not content:
        logger.warning("Extraction returned no content")
        return ExtractedEntities()

    try:
        data = json.loads(strip_code_fences(content))
    except json.JSONDecodeError as e:
        logger.warning(f"Extraction returned invalid JSON: {str(e)}")
        return ExtractedEntities()

    if not isinstance(data, dict):
        logger.warning(f"Extraction returned {type(data).__name__} instead of an object")
        return ExtractedEntities()

    arrays: Dict[str, List[Dict[str, Any]]] = {}
    for key, _ in EXTRACTION_KEYS:
        value = data.get(key)
        if not isinstance(value, list):
            if value is not None:
                logger.warning(f"Extraction key {key} is not an array, ignoring it")
            arrays[key] = []
            continue
        items = [item for item in value if isinstance(item, dict)]
        if len(items) != len(value):
            logger.warning(f"Dropped {len(value) - len(items)} non-object items from {key}")
        arrays[key] = items

    return ExtractedEntities(**arrays)

def build_extraction_input(user_message: str, assistant_reply: str, existing: ExistingSnapshot) -> str:
    profile = json.dumps(existing.profile, indent=2, default=str) if existing.profile else "null"
    return f"""
EXISTING USER CONTEXT (do not re-extract this information):
Profile: {profile}
Skills: {', '.join(existing.skills)}
Goals: {', '.join(existing.goals)}
Projects: {', '.join(existing.projects)}
Co-workers: {', '.join(existing.coworkers)}

CONVERSATION TO ANALYZE:
User: {user_message}
Assistant: {assistant_reply}
"""

class AIService:
    def __init__(self, client: Optional[AsyncOpenAI] = None):
        """Initialize AI service with the configured OpenAI-compatible client"""
        self._client = client
        self.chat_model = settings.CHAT_MODEL
        self.extraction_model = settings.EXTRACTION_MODEL

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=settings.OPENAI_API_KEY,
                base_url=settings.OPENAI_BASE_URL,
                timeout=settings.LLM_TIMEOUT,
            )
        return self._client

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=4, max=10),
        retry=retry_if_exception_type(openai.OpenAIError)
    )
    async def _open_chat_stream(self, messages: List[Dict[str, str]]):
        return await self.client.chat.completions.create(
            model=self.chat_model,
            messages=messages,
            temperature=settings.CHAT_TEMPERATURE,
            max_tokens=settings.CHAT_MAX_TOKENS,
            stream=True,
        )

    async def stream_chat(self, messages: List[Dict[str, str]]) -> AsyncIterator[str]:
        """Yield reply text deltas as the model produces them.

        Opening the stream is retried; once text has been yielded, errors
        propagate to the caller.
        """
        start_time = time.monotonic()
        try:
            stream = await self._open_chat_stream(messages)
            async for chunk in stream:
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta.content
                if delta:
                    yield delta
        except Exception as e:
            logger.error(f"Error streaming chat completion: {str(e)}")
            raise
        logger.info(f"Chat completion streamed in {time.monotonic() - start_time:.2f}s")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=4, max=10),
        retry=retry_if_exception_type(openai.OpenAIError)
    )
    async def _complete_extraction(self, user_content: str) -> Optional[str]:
        response = await self.client.chat.completions.create(
            model=self.extraction_model,
            messages=[
                {"role": "system", "content": EXTRACTION_PROMPT},
                {"role": "user", "content": user_content}
            ],
            temperature=settings.EXTRACTION_TEMPERATURE,
            response_format={"type": "json_object"}
        )
        return response.choices[0].message.content if response.choices else None

    async def extract_entities(
        self,
        user_message: str,
        assistant_reply: str,
        existing: Optional[ExistingSnapshot] = None,
    ) -> ExtractedEntities:
        """Pull candidate entities out of one exchange; never raises"""
        user_content = build_extraction_input(user_message, assistant_reply, existing or ExistingSnapshot())
        try:
            content = await self._complete_extraction(user_content)
        except Exception as e:
            logger.warning(f"Entity extraction failed, no suggestions this turn: {str(e)}")
            return ExtractedEntities()

        entities = parse_extraction(content)
        logger.info(
            "Extracted entities: "
            + ", ".join(f"{key}={len(getattr(entities, key))}" for key, _ in EXTRACTION_KEYS)
        )
        return entities
