# progressbot/discordapp/management/commands/register_commands.py

"""
Registers the bot's slash commands with Discord.

Run once after deployment (and whenever the command list changes):

    python manage.py register_commands [--guild GUILD_ID]

Without `--guild` the commands are registered globally; with it they are
registered on one server, where changes show up immediately.
"""

# Django imports
from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

# Third-party imports
import httpx

# Local application imports
from discordapp.backend import fetch_with_trace
from discordapp.config import InteractionSettings
from discordapp.dispatcher import MILESTONE_STATUS_COMMAND, PROGRESS_UPDATE_COMMAND
from discordapp.exceptions import BackendError

CHAT_INPUT = 1

SLASH_COMMANDS = [
    {
        "name": PROGRESS_UPDATE_COMMAND,
        "type": CHAT_INPUT,
        "description": "Post a recent update on one of your projects",
    },
    {
        "name": MILESTONE_STATUS_COMMAND,
        "type": CHAT_INPUT,
        "description": "Mark the active milestone of one of your projects as completed",
    },
]


class Command(BaseCommand):
    help = "Overwrite the application's slash commands with progress-update and milestone-status."

    def add_arguments(self, parser):
        parser.add_argument("--guild", help="Register on a single guild instead of globally.")

    def handle(self, *args, **options):
        config = InteractionSettings.from_django_settings()
        bot_token = getattr(settings, "DISCORD_BOT_TOKEN", None)
        if not config.application_id or not bot_token:
            raise CommandError("DISCORD_APPLICATION_ID and DISCORD_BOT_TOKEN must both be set.")

        url = f"{config.discord_api_base.rstrip('/')}/applications/{config.application_id}"
        if options.get("guild"):
            url += f"/guilds/{options['guild']}"
        url += "/commands"

        with httpx.Client() as client:
            try:
                registered = fetch_with_trace(
                    client, "register-commands", "PUT", url,
                    headers={"Content-Type": "application/json", "Authorization": f"Bot {bot_token}"},
                    json=SLASH_COMMANDS,
                    timeout=config.outbound_timeout,
                )
            except BackendError as e:
                raise CommandError(str(e)) from e

        names = ", ".join(command.get("name", "?") for command in registered or [] if isinstance(command, dict))
        self.stdout.write(self.style.SUCCESS(f"Registered commands: {names}"))
