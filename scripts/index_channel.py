"""
Index the full history of one or more Slack channels from the command line.

Usage:
    python scripts/index_channel.py C0123456789 [C0987654321 ...]
"""
import asyncio
import sys

from dotenv import load_dotenv
load_dotenv()

from slack_rag.config import get_settings
from slack_rag.core.logging import configure_logging
from slack_rag.embeddings.embedder import Embedder
from slack_rag.vectorstore.turbopuffer import TurbopufferStore
from slack_rag.indexing.pipeline import IndexingPipeline
from slack_rag.slack.workspace import SlackWorkspace


async def main(channel_ids: list[str]) -> int:
    settings = get_settings()
    configure_logging(settings.log_level)

    workspace = SlackWorkspace.from_settings(settings)
    pipeline = IndexingPipeline(
        embedder=Embedder.from_settings(settings),
        store=TurbopufferStore.from_settings(settings),
        max_chunk_chars=settings.max_chunk_chars,
        max_content_chars=settings.max_content_chars,
    )

    failures = 0
    for channel_id in channel_ids:
        print(f"Fetching history for {channel_id}...")
        channel_name = await workspace.channel_name(channel_id)
        messages = await workspace.fetch_channel_messages(channel_id, channel_name=channel_name)
        print(f"Found {len(messages)} messages in #{channel_name or channel_id}. Indexing...")

        report = await pipeline.index_backlog(messages, directory=workspace)
        print(
            f"Done: indexed={report.indexed} skipped={report.skipped} "
            f"failed={report.failed} rows={report.rows}"
        )
        failures += report.failed

    return 1 if failures else 0


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print(__doc__)
        sys.exit(2)
    sys.exit(asyncio.run(main(sys.argv[1:])))
