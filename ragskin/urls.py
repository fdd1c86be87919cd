"""
URL configuration for the ragskin project.
"""
from django.urls import path
from ninja import NinjaAPI

from corpus.api import router as corpus_router

api = NinjaAPI(title="Ragskin: Grounded Search API", version="0.1.0")
api.add_router("/corpus", corpus_router, tags=["corpus"])

urlpatterns = [
    path("api/", api.urls),
]
