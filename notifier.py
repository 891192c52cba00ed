from datetime import datetime, timezone

from models import SpikeAlert, Tier


def escape_md(text: str) -> str:
    """Escape Markdown-sensitive characters."""
    return text.replace('_', '\\_').replace('*', '\\*').replace('[', '\\[').replace('`', '\\`')


def jupiter_url(address: str) -> str:
    return f"https://jup.ag/tokens/{address}"


def format_spike_alert(alert: SpikeAlert) -> str:
    """Format the Telegram message for a spike alert."""
    emoji = "🚨🚨" if alert.tier is Tier.TIER50 else "🚨"
    sign = "+" if alert.price_change_5m >= 0 else ""
    name = escape_md(alert.name)
    symbol = escape_md(alert.symbol)
    timestamp = datetime.fromtimestamp(alert.timestamp, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")
    dex_url = alert.url or f"https://dexscreener.com/solana/{alert.pair_address}"

    text = f"{emoji} *{alert.tier.label} SPIKE DETECTED* {emoji}\n\n"
    text += f"*Token:* {name} (`{symbol}`)\n"
    text += f"*Source:* `{alert.source.value}` | *Age:* {alert.age_hours:.1f}h\n"
    text += f"*Price:* ${alert.price:.8f}\n"
    text += f"*Price Change:* {sign}{alert.price_change_5m:.2f}% (5 min)\n\n"
    text += f"*Market Cap:* ${alert.market_cap:,.0f}\n"
    text += f"*Liquidity:* ${alert.liquidity:,.0f}\n"
    text += f"*Volume (5m):* ${alert.volume_5m:,.0f}\n\n"
    text += f"[📈 DexScreener]({dex_url}) | [🪐 Jupiter]({jupiter_url(alert.address)})\n"
    text += f"⏰ {timestamp}"
    return text
