import click
from flask.cli import with_appcontext

from .extensions import db
from .intake import convert_to_pickup, create_enquiry
from .models import Enquiry


def seed_demo():
    if Enquiry.query.first():
        return None
    enquiry = create_enquiry(
        customer_name='Asha Menon',
        phone='9876543210',
        address='14 MG Road, Kochi',
        message='Strap torn on the bag, both shoes need cleaning',
        inquiry_type='WhatsApp',
        products=[{'product': 'Bag', 'quantity': 1}, {'product': 'Shoe', 'quantity': 2}],
        quoted_amount=2500,
    )
    return convert_to_pickup(enquiry.id)


@click.command('seed-demo')
@with_appcontext
def seed_demo_command():
    """Create the demo enquiry when the database is empty."""
    db.create_all()
    enquiry = seed_demo()
    if enquiry is None:
        click.echo('Database already has enquiries, nothing seeded.')
    else:
        click.echo(f'Seeded enquiry {enquiry.id} in {enquiry.current_stage} stage.')


def run():
    from . import create_app

    app = create_app()
    with app.app_context():
        db.create_all()
        seed_demo()


if __name__ == '__main__':
    run()
