from dataclasses import dataclass

from pydantic import ValidationError
from pydantic_ai import Agent, RunContext

from config import settings
from recommender.service import MovieNotFoundError, SearchRequest, SearchService, format_matches


@dataclass
class Deps:
    service: SearchService


# Model is chosen per run so importing this module needs no API key
recommender_agent = Agent(
    deps_type=Deps,
    system_prompt=settings.system_prompt,
)


@recommender_agent.tool
async def similar_movies(ctx: RunContext[Deps], title: str, limit: int = 10) -> str:
    """Find movies whose tag profile is most similar to the named movie.

    Args:
        title: Full or partial title of the movie to compare against.
        limit: Number of similar movies to return.

    Returns:
        A ranked list of similar movies with cosine similarity scores.
    """
    return lookup_similar(ctx.deps.service, title, limit)


def lookup_similar(service: SearchService, title: str, limit: int) -> str:
    try:
        record, matches = service.search(SearchRequest(query=title, limit=max(limit, 1)))
    except ValidationError:
        return "Please name a movie to compare against."
    except MovieNotFoundError:
        return f"No movie found matching '{title}'."

    return format_matches(record, matches)


async def ask(service: SearchService, question: str) -> str:
    result = await recommender_agent.run(question, deps=Deps(service=service), model=settings.llm_model)
    return result.output
