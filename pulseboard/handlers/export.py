import io
import json
import logging
from datetime import UTC, datetime
from typing import Literal

from aiogram import Bot, Router
from aiogram.filters import Command
from aiogram.types import BufferedInputFile, Message
from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictInt, ValidationError
from pydantic.alias_generators import to_camel

from pulseboard.currency import (
    get_default_currency,
    notifications_enabled,
    set_default_currency,
    set_notifications_enabled,
)
from pulseboard.db.models import Subscription
from pulseboard.services.subscription_service import (
    InvalidSubscriptionError,
    add_subscription,
    clear_subscriptions,
    get_all_subscriptions,
    validate_subscription,
)

logger = logging.getLogger(__name__)
router = Router()

BACKUP_VERSION = "1.0"


class InvalidBackupError(ValueError):
    pass


class _BackupModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class BackupSubscription(_BackupModel):
    name: str
    amount_minor: StrictInt
    currency: str | None = Field(default=None, pattern=r"^[A-Za-z]{3}$")
    billing_cycle: str
    custom_interval_days: StrictInt | None = None
    next_billing_date: str
    category: str = "other"
    reminder_days_before: list[StrictInt] = Field(default_factory=list)
    is_active: StrictBool = True
    notes: str | None = None


class BackupSettings(_BackupModel):
    default_currency: str = Field(pattern=r"^[A-Za-z]{3}$")
    notifications_enabled: StrictBool = True


class BackupFile(_BackupModel):
    version: Literal["1.0"]
    exported_at: str | None = None
    settings: BackupSettings
    subscriptions: list[BackupSubscription]


def subscription_to_dict(sub: Subscription) -> dict:
    data = {
        "id": str(sub.id),
        "name": sub.name,
        "amountMinor": sub.amount_minor,
        "currency": sub.currency,
        "billingCycle": sub.billing_cycle,
        "nextBillingDate": sub.next_billing_date.isoformat(),
        "category": sub.category,
        "reminderDaysBefore": list(sub.reminder_days_before),
        "isActive": sub.is_active,
    }
    if sub.custom_interval_days is not None:
        data["customIntervalDays"] = sub.custom_interval_days
    if sub.notes:
        data["notes"] = sub.notes
    return data


def build_backup(
    subscriptions: list[Subscription],
    default_currency: str,
    notifications: bool,
    exported_at: datetime,
) -> dict:
    return {
        "version": BACKUP_VERSION,
        "exportedAt": exported_at.astimezone(UTC).isoformat().replace("+00:00", "Z"),
        "settings": {
            "defaultCurrency": default_currency,
            "notificationsEnabled": notifications,
        },
        "subscriptions": [subscription_to_dict(s) for s in subscriptions],
    }


def parse_backup(data) -> BackupFile:
    """Check a decoded backup document. Raises InvalidBackupError naming the first problem."""
    try:
        backup = BackupFile.model_validate(data)
    except ValidationError as exc:
        error = exc.errors()[0]
        location = ".".join(str(part) for part in error["loc"]) or "top level"
        raise InvalidBackupError(f"Invalid backup at {location}: {error['msg']}") from None

    for entry in backup.subscriptions:
        try:
            validate_subscription(
                entry.name,
                entry.amount_minor,
                entry.billing_cycle,
                entry.next_billing_date,
                category=entry.category,
                custom_interval_days=entry.custom_interval_days,
                reminder_days_before=entry.reminder_days_before,
            )
        except InvalidSubscriptionError as exc:
            raise InvalidBackupError(f"Invalid backup entry '{entry.name}': {exc}") from None
    return backup


async def import_backup(chat_id: int, data) -> int:
    """Replace the chat's subscriptions and settings with a backup. Returns the number imported.

    Nothing is changed unless every entry is valid. Record ids are reassigned.
    """
    backup = parse_backup(data)
    default_currency = backup.settings.default_currency.upper()

    await clear_subscriptions(chat_id)
    for entry in backup.subscriptions:
        await add_subscription(
            chat_id=chat_id,
            currency=entry.currency or default_currency,
            **entry.model_dump(exclude={"currency"}),
        )
    await set_default_currency(chat_id, default_currency)
    await set_notifications_enabled(chat_id, backup.settings.notifications_enabled)

    logger.info("Imported %d subscriptions from backup", len(backup.subscriptions), extra={"chat_id": chat_id})
    return len(backup.subscriptions)


@router.message(Command("export"))
async def cmd_export(message: Message):
    subs = await get_all_subscriptions(message.chat.id)
    if not subs:
        await message.answer("No subscriptions to export.")
        return

    now = datetime.now(UTC)
    backup = build_backup(
        subs,
        await get_default_currency(message.chat.id),
        await notifications_enabled(message.chat.id),
        now,
    )
    filename = f"pulseboard_backup_{now.date().isoformat()}.json"
    doc = BufferedInputFile(json.dumps(backup, indent=2).encode("utf-8"), filename=filename)
    await message.answer_document(doc, caption=f"Subscription backup ({len(subs)} records)")


@router.message(Command("import"))
async def cmd_import(message: Message, bot: Bot):
    doc = message.document
    if doc is None and message.reply_to_message:
        doc = message.reply_to_message.document
    if doc is None:
        await message.answer("Send a backup file with the caption /import, or reply /import to one.")
        return

    file = await bot.get_file(doc.file_id)
    buffer = io.BytesIO()
    await bot.download_file(file.file_path, buffer)

    try:
        data = json.loads(buffer.getvalue())
    except ValueError:
        await message.answer("That file is not valid JSON.")
        return

    try:
        count = await import_backup(message.chat.id, data)
    except InvalidBackupError as exc:
        await message.answer(str(exc))
        return

    await message.answer(f"Imported {count} subscriptions. Existing ones were replaced.")
