# progressbot/discordapp/urls.py

"""
URL Configuration for the Discord App Integration.

Discord delivers every interaction (PING, slash commands, component actions,
modal submissions) to a single "Interactions Endpoint URL", configured in the
developer portal to point at the view below.
"""

from django.urls import path
from . import views

app_name = 'discordapp'

urlpatterns = [
    path("interactions/", views.interactions, name="interactions"),
]
