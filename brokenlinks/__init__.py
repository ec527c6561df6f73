"""Website broken-link checker: crawl a site, then report every link that fails."""

from .crawler import CrawlConfig, CrawlReport, Pipeline, load_config

__version__ = "0.1.0"

__all__ = ["CrawlConfig", "CrawlReport", "Pipeline", "__version__", "load_config"]
