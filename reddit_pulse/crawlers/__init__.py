from .base import RawPost, Crawler
from .reddit import RedditSearchCrawler
