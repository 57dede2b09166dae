"""CLI tools for EventCraft administration."""

import click
from sqlalchemy import select

from eventcraft.db.base import Base
from eventcraft.db.enums import SubscriptionStatus
from eventcraft.db.models import Provider, User
from eventcraft.db.session import SessionLocal, engine


@click.group()
def cli():
    """EventCraft CLI tools."""
    pass


@cli.command()
def init_db():
    """
    Create all tables directly from the models.

    For local development and throwaway databases; deployed environments
    use ``alembic upgrade head``.

    Example:
        python -m eventcraft.cli init-db
    """
    import eventcraft.db.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    click.echo(f"✓ Created {len(Base.metadata.tables)} table(s)")


@cli.command()
@click.option("--email", required=True, help="Provider account email")
@click.option(
    "--status",
    required=True,
    type=click.Choice([s.value for s in SubscriptionStatus]),
    help="Subscription status to assign",
)
def set_subscription_status(email: str, status: str):
    """
    Override a provider's subscription status.

    Used when a webhook was missed. The next Stripe event for the customer
    overwrites this value.

    Example:
        python -m eventcraft.cli set-subscription-status --email "dj@example.com" --status active
    """
    db = SessionLocal()
    try:
        user = db.execute(
            select(User).where(User.email == email.strip().lower())
        ).scalar_one_or_none()
        if not user:
            click.echo(f"❌ User not found: {email}")
            return

        provider = db.execute(
            select(Provider).where(Provider.user_id == user.id)
        ).scalar_one_or_none()
        if not provider:
            click.echo(f"❌ {email} has no provider profile")
            return

        old_status = provider.subscription_status
        provider.subscription_status = status
        db.commit()

        click.echo(f"✓ Updated {provider.business_name}")
        click.echo(f"  Subscription: {old_status} → {status}")

    except Exception as e:
        db.rollback()
        click.echo(f"❌ Error: {e}")
        raise
    finally:
        db.close()


@cli.command()
@click.option("--email", required=True, help="Provider account email")
@click.option("--active/--inactive", default=True, help="Show or hide the listing")
def set_provider_visibility(email: str, active: bool):
    """
    Re-activate or hide a provider listing.

    Example:
        python -m eventcraft.cli set-provider-visibility --email "dj@example.com" --inactive
    """
    db = SessionLocal()
    try:
        provider = db.execute(
            select(Provider).join(User).where(User.email == email.strip().lower())
        ).scalar_one_or_none()
        if not provider:
            click.echo(f"❌ No provider profile for {email}")
            return

        provider.is_active = active
        db.commit()
        click.echo(f"✓ {provider.business_name} is now {'active' if active else 'hidden'}")

    except Exception as e:
        db.rollback()
        click.echo(f"❌ Error: {e}")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    cli()
