# saas_reviews/cli.py
import asyncio
import logging
from typing import Optional

import typer
from pydantic import ValidationError

from saas_reviews.config import ScrapeOptions, proxy_from_env
from saas_reviews.errors import NoDataCollected, PersistenceFailure
from saas_reviews.orchestrator import Orchestrator
from saas_reviews.output import format_stats, write_reviews, write_stats

app = typer.Typer(help="Collect SaaS product reviews from G2, Capterra and TrustRadius.")

EXAMPLES = """
Examples:

  Basic usage - scrape G2 reviews for Slack:
  $ saas-reviews scrape -c "Slack" -s g2 --start-date 2024-01-01 --end-date 2024-12-31

  Scrape from all sources with limit:
  $ saas-reviews scrape -c "Microsoft Teams" -s all --start-date 2024-01-01 --end-date 2024-12-31 -l 200

  Verbose mode with visible browser:
  $ saas-reviews scrape -c "Zoom" -s g2 --verbose --no-headless

  Use direct URL:
  $ saas-reviews scrape -c "Slack" -u "https://www.g2.com/products/slack/reviews"

  Custom delays and timeout:
  $ saas-reviews scrape -c "Slack" -s all -d 5000 -t 60000
"""


@app.command()
def scrape(
    company: str = typer.Option(..., "--company", "-c", help="Company name to search for"),
    source: str = typer.Option("g2", "--source", "-s", help="g2 | capterra | trustradius | all"),
    url: Optional[str] = typer.Option(None, "--url", "-u", help="Direct URL to scrape (skips search)"),
    start_date: Optional[str] = typer.Option(None, "--start-date", help="Start date YYYY-MM-DD"),
    end_date: Optional[str] = typer.Option(None, "--end-date", help="End date YYYY-MM-DD"),
    proxy: Optional[str] = typer.Option(None, "--proxy", envvar="PLAYWRIGHT_PROXY", help="Proxy server URL"),
    limit: int = typer.Option(100, "--limit", "-l", help="Maximum number of reviews per source"),
    delay: int = typer.Option(2000, "--delay", "-d", help="Delay between requests in milliseconds"),
    timeout: int = typer.Option(30000, "--timeout", "-t", help="Page load timeout in milliseconds"),
    run_timeout: Optional[int] = typer.Option(None, "--run-timeout", help="Abort the whole run after N milliseconds"),
    headless: bool = typer.Option(True, "--headless/--no-headless", help="Run browser headless"),
    block_resources: bool = typer.Option(False, "--block-resources", help="Block images, CSS and fonts"),
    concurrent: bool = typer.Option(False, "--concurrent", help="Scrape sources in parallel"),
    output_dir: str = typer.Option("output", "--output-dir", help="Directory for the JSON output"),
    verbose: bool = typer.Option(False, "--verbose", help="Debug logging and a stats file"),
):
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO)
    try:
        options = ScrapeOptions(
            company=company,
            source=source,
            url=url,
            start_date=start_date or None,
            end_date=end_date or None,
            proxy=proxy or proxy_from_env(),
            limit=limit,
            delay_ms=delay,
            timeout_ms=timeout,
            run_timeout_ms=run_timeout,
            headless=headless,
            block_resources=block_resources,
            concurrent=concurrent,
            verbose=verbose,
        )
    except ValidationError as e:
        for err in e.errors():
            typer.echo(f"Invalid option {'.'.join(map(str, err['loc'])) or 'value'}: {err['msg']}")
        raise typer.Exit(code=1)

    orchestrator = Orchestrator(options)
    try:
        result = asyncio.run(orchestrator.run())
    except NoDataCollected as e:
        typer.echo(f"Scraping failed: {e}")
        raise typer.Exit(code=1)

    try:
        outpath = write_reviews(result.reviews, company, out_dir=output_dir)
        if verbose:
            write_stats(result.stats, outpath)
    except PersistenceFailure as e:
        typer.echo(f"Error processing results: {e}")
        raise typer.Exit(code=2)

    typer.echo(f"Results saved to: {outpath}")
    typer.echo(format_stats(result.stats))


@app.command()
def examples():
    """Show usage examples."""
    typer.echo(EXAMPLES)


if __name__ == "__main__":
    app()
