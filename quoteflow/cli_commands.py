"""
Flask CLI commands for operations.

Commands:
- flask init-db: Create all tables
- flask expire-quotes: Expire quotes past their valid_until (cron)
"""

import click
from quoteflow import database


def init_cli_commands(app):
    """Register CLI commands with Flask app."""

    @app.cli.command('init-db')
    def init_db_command():
        """Create every table known to the models."""
        database.create_all()
        click.echo(click.style('✅ Tables créées.', fg='green'))

    @app.cli.command('expire-quotes')
    @click.option('--user-id', default=None, help='Limit the sweep to one user')
    def expire_quotes(user_id):
        """Expire sent/viewed/draft quotes whose valid_until is past."""
        from quoteflow.services.expiration_service import process_quote_expirations

        session = database.get_session()
        try:
            summary = process_quote_expirations(session, user_id=user_id)
        except Exception as e:
            session.rollback()
            click.echo(click.style(f'❌ Erreur pendant l\'expiration des devis : {e}', fg='red'))
            raise SystemExit(1)
        finally:
            session.remove()

        click.echo(click.style(
            f"\n✅ {summary['expired']} devis expiré(s) sur {summary['processed']} traité(s)",
            fg='green', bold=True
        ))
        for result in summary['results']:
            marker = '✓' if result['success'] else '✗'
            details = []
            if not result['followups_stopped']:
                details.append('relances non arrêtées')
            if not result['event_logged']:
                details.append('événement non journalisé')
            suffix = f" ({', '.join(details)})" if details and result['status_updated'] else ''
            click.echo(f"   {marker} {result['quote_number']} [{result['previous_status']}]{suffix}")
