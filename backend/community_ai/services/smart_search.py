import logging
from typing import List, Optional

from community_ai.models import SearchDocument, SearchFeedback, SearchUserContext
from community_ai.schemas import SearchIntent, SemanticSearchResult
from community_ai.services.model_gateway import ModelGateway
from community_ai.validation import joined, require_range, require_text

logger = logging.getLogger(__name__)

SEMANTIC_DOCUMENT_LIMIT = 30
EXPLAINED_RESULT_LIMIT = 5

SEARCH_ANALYST_PROMPT = (
    "You are an expert search analyst who understands user intent and extracts meaningful entities from "
    "search queries to improve search results."
)
QUERY_OPTIMIZER_PROMPT = (
    "You are a search optimization expert who helps users find exactly what they're looking for by "
    "improving their search queries."
)
SUGGESTION_PROMPT = "You are a search suggestion expert who provides helpful, relevant autocomplete suggestions."
SEMANTIC_PROMPT = (
    "You are a semantic search expert who understands context and meaning to find the most relevant results."
)
EXPLAINER_PROMPT = (
    "You are a search explainer who helps users understand search results and how to improve their searches."
)


def _context_lines(user_context: Optional[SearchUserContext], include_communities: bool = False) -> List[str]:
    ctx = user_context or SearchUserContext()
    lines = [
        "User context:",
        f"- Location: {ctx.location or 'not specified'}",
        f"- Interests: {joined(ctx.interests, 'not specified')}",
        f"- Recent searches: {joined(ctx.recent_searches, 'none')}",
    ]
    if include_communities:
        lines.append(f"- Member communities: {joined(ctx.member_communities, 'none')}")
    return lines


def build_intent_prompt(query: str, user_context: Optional[SearchUserContext] = None) -> str:
    lines = [f'Analyze this search query and extract the user\'s intent, entities, and suggested filters: "{query}"', ""]
    lines += _context_lines(user_context, include_communities=True)
    lines += [
        "",
        "Determine:",
        "1. Primary search intent",
        "2. Extract entities (locations, topics, skills, etc.)",
        "3. Suggest appropriate filters",
        "4. Provide alternative query suggestions",
    ]
    return "\n".join(lines)


def build_query_enhancement_prompt(
    original_query: str,
    result_count: int,
    user_feedback: Optional[SearchFeedback] = None,
) -> str:
    feedback = user_feedback or SearchFeedback()
    return "\n".join(
        [
            f'Improve this search query based on results and user behavior: "{original_query}"',
            "",
            f"Search results summary: {result_count} results found",
            "User feedback:",
            f"- Clicked results: {joined(feedback.clicked_results, 'none')}",
            f"- Ignored results: {joined(feedback.ignored_results, 'none')}",
            f"- User refined to: {feedback.refined_query or 'no refinement'}",
            "",
            "Suggest:",
            "1. Improved query variations",
            "2. Additional search terms",
            "3. Filter recommendations",
            "4. Alternative approaches",
        ]
    )


def build_suggestion_prompt(partial_query: str, user_context: Optional[SearchUserContext] = None) -> str:
    lines = [f'Generate 5-8 search suggestions for the partial query: "{partial_query}"', ""]
    lines += _context_lines(user_context)
    lines += [
        "",
        "Suggestions should be:",
        "- Relevant to the partial query",
        "- Personalized to user context",
        "- Diverse in scope (communities, events, people, topics)",
        "- Actionable and specific",
    ]
    return "\n".join(lines)


def build_semantic_search_prompt(query: str, documents: List[SearchDocument]) -> str:
    listed = "\n".join(
        f"{doc.id} | {doc.type} | {doc.category or 'uncategorized'} | {doc.title}: {doc.description}"
        for doc in documents
    )
    return (
        f'Rank these documents by relevance to the query: "{query}"\n\n'
        "Documents (id | type | category | title: description):\n"
        f"{listed}\n\n"
        "Return only documents from this list, using their ids, with relevance scores between 0 and 1 "
        "and the query terms each one matched."
    )


def build_results_explanation_prompt(query: str, results: List[SearchDocument]) -> str:
    listed = "\n".join(
        f"{index}. {doc.title}: {doc.description}"
        for index, doc in enumerate(results[:EXPLAINED_RESULT_LIMIT], start=1)
    )
    return "\n".join(
        [
            f'Explain why these search results were returned for the query: "{query}"',
            "",
            "Results:",
            listed or "none",
            "",
            "Provide:",
            "1. Why each result is relevant",
            "2. What terms/concepts matched",
            "3. Suggestions for refining the search",
            "4. Alternative search strategies",
        ]
    )


class SmartSearch:
    def __init__(self, gateway: ModelGateway) -> None:
        self.gateway = gateway

    async def analyze_search_intent(
        self, query: str, user_context: Optional[SearchUserContext] = None
    ) -> SearchIntent:
        query = require_text("query", query)
        return await self.gateway.generate_structured(
            build_intent_prompt(query, user_context), SearchIntent, system_prompt=SEARCH_ANALYST_PROMPT
        )

    async def enhance_search_query(
        self,
        original_query: str,
        results: List[SearchDocument],
        user_feedback: Optional[SearchFeedback] = None,
    ) -> str:
        original_query = require_text("original_query", original_query)
        prompt = build_query_enhancement_prompt(original_query, len(results or []), user_feedback)
        return await self.gateway.generate_text(prompt, system_prompt=QUERY_OPTIMIZER_PROMPT)

    async def generate_search_suggestions(
        self, partial_query: str, user_context: Optional[SearchUserContext] = None
    ) -> str:
        partial_query = require_text("partial_query", partial_query)
        return await self.gateway.generate_text(
            build_suggestion_prompt(partial_query, user_context), system_prompt=SUGGESTION_PROMPT
        )

    async def semantic_search(
        self,
        query: str,
        documents: List[SearchDocument],
        threshold: float = 0.0,
        max_results: int = 10,
    ) -> SemanticSearchResult:
        query = require_text("query", query)
        require_range("threshold", threshold, 0, 1)
        require_range("max_results", max_results, 1, SEMANTIC_DOCUMENT_LIMIT)
        inlined = list(documents or [])[:SEMANTIC_DOCUMENT_LIMIT]
        if not inlined:
            return SemanticSearchResult(results=[], total_count=0)

        ranked = await self.gateway.generate_structured(
            build_semantic_search_prompt(query, inlined),
            SemanticSearchResult,
            system_prompt=SEMANTIC_PROMPT,
            temperature=0.3,
        )
        known_ids = {doc.id for doc in inlined}
        kept = [item for item in ranked.results if item.id in known_ids and item.relevance_score >= threshold]
        kept.sort(key=lambda item: item.relevance_score, reverse=True)
        kept = kept[:max_results]
        return SemanticSearchResult(results=kept, total_count=len(kept))

    async def explain_search_results(self, query: str, results: List[SearchDocument]) -> str:
        query = require_text("query", query)
        return await self.gateway.generate_text(
            build_results_explanation_prompt(query, results or []), system_prompt=EXPLAINER_PROMPT
        )
