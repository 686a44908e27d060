# Scrapy settings for aufcrawler project
#
# For simplicity, this file contains only settings considered important or
# commonly used. You can find more settings consulting the documentation:
#
#     https://docs.scrapy.org/en/latest/topics/settings.html
#     https://docs.scrapy.org/en/latest/topics/downloader-middleware.html
#     https://docs.scrapy.org/en/latest/topics/spider-middleware.html
import os

BOT_NAME = "aufcrawler"

SPIDER_MODULES = ["aufcrawler.spiders"]
NEWSPIDER_MODULE = "aufcrawler.spiders"

LOG_LEVEL = os.getenv("AUFCRAWLER_LOGLEVEL", "INFO")
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

ROBOTSTXT_OBEY = True

# Detail pages of one listing page are fetched in parallel, at most this many per site
CONCURRENT_REQUESTS = 16
CONCURRENT_REQUESTS_PER_DOMAIN = int(os.getenv("AUFCRAWLER_CONCURRENCY", "4"))
DOWNLOAD_DELAY = float(os.getenv("AUFCRAWLER_DOWNLOAD_DELAY", "0.25"))
DOWNLOAD_TIMEOUT = int(os.getenv("AUFCRAWLER_DOWNLOAD_TIMEOUT", "20"))

RETRY_ENABLED = True
RETRY_TIMES = 2
RETRY_HTTP_CODES = [500, 502, 503, 504, 522, 524, 408, 429]

COOKIES_ENABLED = False

USER_AGENTS = [
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
]
ACCEPT_LANGUAGE = "fr-FR,fr;q=0.9,en;q=0.5"

DOWNLOADER_MIDDLEWARES = {
    "aufcrawler.middlewares.UserAgentRotationMiddleware": 400,
}

ITEM_PIPELINES = {
    "aufcrawler.pipelines.MetadataPipeline": 300,
    "aufcrawler.pipelines.StorePipeline": 800,
}

# Store
MONGO_URI = os.getenv("MONGO_URI", "mongodb://localhost:27017")
MONGO_DB = os.getenv("MONGO_DB", "aufconnect")
# 0 writes everything once, when the spider closes
STORE_BATCH_SIZE = int(os.getenv("AUFCRAWLER_BATCH_SIZE", "100"))

# Listings are walked until an empty page; this bounds a listing that never empties
MAX_PAGES = int(os.getenv("AUFCRAWLER_MAX_PAGES", "200"))

REQUEST_FINGERPRINTER_IMPLEMENTATION = "2.7"
FEED_EXPORT_ENCODING = "utf-8"
