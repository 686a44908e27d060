# Define here the models for your downloader middleware
#
# See documentation in:
# https://docs.scrapy.org/en/latest/topics/downloader-middleware.html
import random


class UserAgentRotationMiddleware:
    """Picks a browser User-Agent per request and asks for French pages."""

    def __init__(self, user_agents, accept_language):
        self.user_agents = list(user_agents)
        self.accept_language = accept_language

    @classmethod
    def from_crawler(cls, crawler):
        return cls(
            crawler.settings.getlist("USER_AGENTS"),
            crawler.settings.get("ACCEPT_LANGUAGE", "fr-FR,fr;q=0.9,en;q=0.5"),
        )

    def process_request(self, request, spider):
        if self.user_agents:
            request.headers["User-Agent"] = random.choice(self.user_agents)
        request.headers.setdefault("Accept-Language", self.accept_language)
        return None
