"""Onboarding message texts (Telegram HTML parse mode)."""

from __future__ import annotations

from html import escape

from .models import OnboardingContext, Participant

ROLE_LABELS = {
    "owner": "Арендодатель",
    "renter": "Арендатор",
}


def listing_url(bot_username: str, listing_id: str) -> str:
    return f"https://t.me/{bot_username}?startapp=listing_{listing_id}"


def _listing_line(context: OnboardingContext) -> str:
    return f"📋 <b>{escape(context.listing_title or 'Объявление')}</b>"


def participant_label(participant: Participant) -> str:
    """Name and @handle when known, role label otherwise."""
    name = participant.display_name
    username = participant.username
    if name and username:
        return f"{escape(name)} (@{escape(username)})"
    if username:
        return f"@{escape(username)}"
    if name:
        return escape(name)
    return ROLE_LABELS[participant.role]


def awaiting_second_party(context: OnboardingContext, present: Participant, absent: Participant) -> str:
    lines = [
        "👋 Добро пожаловать в групповой чат по объявлению!",
        "",
        _listing_line(context),
        "",
        f"{ROLE_LABELS[present.role]} уже в чате: {participant_label(present)}.",
        f"Ждём, когда присоединится {ROLE_LABELS[absent.role].lower()}.",
    ]
    if context.invite_link:
        lines += [
            "",
            f"🔗 Ссылка для входа в чат: {escape(context.invite_link)}",
        ]
    return "\n".join(lines)


def both_present(context: OnboardingContext) -> str:
    return "\n".join([
        "👋 Все участники в чате!",
        "",
        _listing_line(context),
        "",
        "Здесь можно обсудить детали аренды: сроки заезда, условия оплаты, "
        "договор и просмотр. Менеджер Renty поможет, если возникнут вопросы.",
    ])


def summary(
    context: OnboardingContext,
    *,
    bot_username: str,
    owner_profile: str | None = None,
    renter_profile: str | None = None,
) -> str:
    lines = [
        "📝 Участники чата:",
        f"• {ROLE_LABELS['owner']}: {participant_label(context.owner)}",
        f"• {ROLE_LABELS['renter']}: {participant_label(context.renter)}",
        "• Менеджер Renty",
    ]
    for role, profile in (("owner", owner_profile), ("renter", renter_profile)):
        if profile:
            lines += ["", f"<b>{ROLE_LABELS[role]} о себе:</b>", profile]
    url = listing_url(bot_username, context.listing_id)
    lines += ["", f'🔗 <a href="{escape(url)}">Открыть объявление</a>']
    return "\n".join(lines)
