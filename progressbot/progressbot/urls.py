# progressbot/progressbot/urls.py

"""
Root URL Configuration for the Progressbot Project.

The defined patterns are:
- `/discord/`: Delegates the Discord interaction endpoint to the `discordapp`.
  Discord's "Interactions Endpoint URL" should be set to
  `https://<host>/discord/interactions/`.
"""

from django.urls import include, path

urlpatterns = [
    path('discord/', include('discordapp.urls')),
]
