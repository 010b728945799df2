import csv
import io
import json
import logging
import math
from pathlib import Path

import aioboto3
import numpy as np

from config import settings
from recommender.vectors import Corpus, make_record

logger = logging.getLogger(__name__)


async def load_dataset() -> Corpus:
    """Load the tag genome from S3 if configured, otherwise from local data/ directory."""
    names = [settings.tags_file, settings.movies_file, settings.scores_file]
    if settings.s3_bucket:
        tags_text, movies_text, scores_text = await load_from_s3(names)
    else:
        tags_text, movies_text, scores_text = load_from_local(settings.data_path, names)

    return parse_dataset(tags_text, movies_text, scores_text, settings.vector_size)


def load_from_local(data_path: str, names: list[str]) -> list[str]:
    """Read each dataset file from a local directory."""
    path = Path(data_path)
    if not path.is_dir():
        raise FileNotFoundError(f"Local data directory not found: {data_path}")
    texts = []
    for name in names:
        file_path = path / name
        if not file_path.is_file():
            raise FileNotFoundError(f"Dataset file not found: {file_path}")
        texts.append(file_path.read_text(encoding="utf-8"))
    return texts


async def load_from_s3(names: list[str]) -> list[str]:
    """Fetch each dataset file from S3."""
    session = aioboto3.Session(
        aws_access_key_id=settings.aws_access_key_id,
        aws_secret_access_key=settings.aws_secret_access_key,
        region_name=settings.aws_region,
    )

    texts = []
    async with session.client("s3") as s3:
        for name in names:
            key = f"{settings.s3_prefix.rstrip('/')}/{name}" if settings.s3_prefix else name
            response = await s3.get_object(Bucket=settings.s3_bucket, Key=key)
            content = await response["Body"].read()
            texts.append(content.decode("utf-8"))
    return texts


def load_tag_map(tags_text: str) -> dict[str, int]:
    """Map each lowercased tag name to its position in the vector."""
    tags = json.loads(tags_text)
    return {tag_info["tag"].lower(): position for position, tag_info in enumerate(tags)}


def parse_dataset(
    tags_text: str, movies_text: str, scores_text: str, vector_size: int
) -> Corpus:
    """Assemble movie tag-relevance vectors into a Corpus.

    Score rows naming an unknown movie or tag, or a tag whose position falls
    outside the vector, are ignored. Rows whose score is not a number are
    skipped and counted, as are NaN and infinite scores.
    """
    tag_map = load_tag_map(tags_text)
    movies = json.loads(movies_text)

    titles: dict[str, str] = {}
    vectors: dict[str, np.ndarray] = {}
    for movie in movies:
        item_id = str(movie["item_id"])
        titles[item_id] = movie["title"]
        vectors[item_id] = np.zeros(vector_size, dtype=np.float64)
    logger.info("Loaded metadata for %d movies", len(titles))

    rows = csv.reader(io.StringIO(scores_text))
    next(rows, None)  # header

    skipped = 0
    for row in rows:
        if len(row) < 3:
            continue
        tag_name, item_id, score = row[0], row[1], row[2]

        vector = vectors.get(item_id)
        position = tag_map.get(tag_name.lower())
        if vector is None or position is None or position >= vector_size:
            continue

        try:
            relevance = float(score)
        except ValueError:
            skipped += 1
            continue
        if not math.isfinite(relevance):
            skipped += 1
            continue

        vector[position] = relevance

    if skipped:
        logger.warning("Skipped %d score rows with non-numeric or non-finite relevance", skipped)
    logger.info("Loaded tag vectors for %d movies", len(vectors))

    records = (make_record(item_id, titles[item_id], vector) for item_id, vector in vectors.items())
    return Corpus(records, dimensionality=vector_size)
