import sys
import asyncio
from datetime import datetime, timedelta
from typing import Any, Dict, List

# --- Settings/Logging ---
from matchcatalog.logging.setup import setup_logging
from matchcatalog.config.settings import settings

setup_logging()

from loguru import logger

from matchcatalog.models.enums import SourceTag
from matchcatalog.scrapers.base_scraper import BaseScraper, ScraperError, AuthenticationError
from matchcatalog.scrapers.migu_scraper import MiguScraper, MiguEmbeddedScraper
from matchcatalog.scrapers.playlist_scraper import PlaylistScraper
from matchcatalog.scrapers.douyin_scraper import DouyinReplayScraper
from matchcatalog.normalization.normalizer import Normalizer
from matchcatalog.normalization.reconciler import MatchReconciler
from matchcatalog.storage.snapshot import SnapshotError, build_snapshot, write_snapshot
from matchcatalog.utils.time_utils import shanghai_now

from rich import print
from rich.panel import Panel


def build_scrapers(reference_now: datetime) -> List[BaseScraper]:
    scrapers: List[BaseScraper] = []
    if settings.enable_migu:
        scrapers.append(MiguScraper(reference_now))
        if settings.migu_embedded_pages:
            scrapers.append(MiguEmbeddedScraper(reference_now))
    if settings.enable_playlist:
        scrapers.append(PlaylistScraper())
    if settings.enable_douyin:
        scrapers.append(DouyinReplayScraper())
    return scrapers


async def run_scrape_cycle(reference_now: datetime) -> Dict[SourceTag, List[Any]]:
    """Runs every enabled scraper concurrently and collects their raw output."""
    logger.info("Starting scrape cycle...")
    scrapers = build_scrapers(reference_now)
    all_raw_results: Dict[SourceTag, List[Any]] = {}

    async def run_scraper(scraper: BaseScraper):
        try:
            logger.info(f"Running scraper: {scraper.source.value}")
            all_raw_results[scraper.source] = await scraper.fetch()
            logger.info(f"Successfully completed scrape for {scraper.source.value}")
        except AuthenticationError as e:
            logger.critical(f"{scraper.source.value} Authentication Error: {e} - Check tokens!")
        except ScraperError as e:
            logger.error(f"{scraper.source.value} Scraper Error during fetch: {e}")
        except Exception as e:
            logger.exception(f"Unexpected error running scraper {scraper.source.value}: {e}")
        finally:
            await scraper.close()

    await asyncio.gather(*(run_scraper(s) for s in scrapers))

    # Keep a stable source order regardless of completion order
    ordered = {s.source: all_raw_results[s.source] for s in scrapers if s.source in all_raw_results}
    logger.info(f"Scrape cycle finished. Collected data keys: {[s.value for s in ordered]}")
    return ordered


async def main() -> int:
    """Main entry point: one batch pass producing one snapshot."""
    logger.info("Starting match catalog run")
    # The single wall-clock read of the run
    reference_now = shanghai_now()

    raw_data = await run_scrape_cycle(reference_now)
    if not raw_data:
        logger.error("Scraping cycle returned no data. Nothing published.")
        return 1

    observations = Normalizer().normalize(raw_data)
    reconciler = MatchReconciler(
        reference_now,
        policy=settings.identity_policy,
        status_window=timedelta(hours=settings.status_window_hours),
    )
    result = reconciler.reconcile(observations)
    if result.total == 0:
        logger.error("Reconciliation produced no matches. Keeping the previous snapshot.")
        return 1

    snapshot = build_snapshot(result, reference_now, [s.value for s in raw_data])
    try:
        target = write_snapshot(snapshot, settings.output_path)
    except SnapshotError as e:
        logger.error(f"Snapshot was not published: {e}")
        return 1

    print(
        Panel.fit(
            f"[bold]{result.total}[/bold] matches written to {target}\n"
            f"Categories: {snapshot['categoryCounts']}\n"
            f"Sources: {snapshot['sourceCounts']}\n"
            f"Rejected observations: {result.rejected}",
            title=f"Match catalog {snapshot['updateTime']}",
        )
    )
    return 0


if __name__ == "__main__":
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        logger.info("Execution interrupted by user (KeyboardInterrupt).")
        sys.exit(0)
