from __future__ import annotations

from aiohttp import web

from surveyhub.cache import Cache
from surveyhub.config import Settings
from surveyhub.database.session import Database
from surveyhub.realtime import BroadcastHub
from surveyhub.services.analytics import AnalyticsService
from surveyhub.services.auth import AuthService
from surveyhub.services.surveys import SurveyService
from surveyhub.services.votes import VoteService
from surveyhub.utils.ratelimit import FixedWindowLimiter

SETTINGS = web.AppKey("settings", Settings)
DB = web.AppKey("db", Database)
CACHE = web.AppKey("cache", Cache)
HUB = web.AppKey("hub", BroadcastHub)
AUTH = web.AppKey("auth", AuthService)
VOTES = web.AppKey("votes", VoteService)
SURVEYS = web.AppKey("surveys", SurveyService)
ANALYTICS = web.AppKey("analytics", AnalyticsService)
VOTE_LIMITER = web.AppKey("vote_limiter", FixedWindowLimiter)
API_LIMITER = web.AppKey("api_limiter", FixedWindowLimiter)
