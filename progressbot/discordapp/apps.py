# progressbot/discordapp/apps.py

from django.apps import AppConfig


class DiscordappConfig(AppConfig):
    name = 'discordapp'
    verbose_name = 'Discord interactions'
