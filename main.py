"""
Main entry point for the SkyWings booking backend
Provides commands to run the API server, create the schema and seed sample data
"""
import argparse
import logging
import sys

from dotenv import load_dotenv

from backend.config import Settings
from database import DatabaseManager


def serve(settings: Settings, args):
    """Run the HTTP API"""
    import uvicorn
    from api import create_app

    app = create_app(settings)
    uvicorn.run(
        app,
        host=args.host or settings.host,
        port=args.port or settings.port,
        log_config=None,
    )


def init_db(settings: Settings, args):
    """Create the schema, optionally dropping existing tables first"""
    db_manager = DatabaseManager.from_settings(settings)
    try:
        if args.drop:
            print("Dropping existing tables...")
            db_manager.drop_tables()
        print("Initializing database...")
        db_manager.create_tables()
        print("Database ready!")
    finally:
        db_manager.close_all_connections()


def seed(settings: Settings, args):
    """Populate the database with Faker sample data"""
    from data.data_generator import DataGenerator

    db_manager = DatabaseManager.from_settings(settings)
    try:
        db_manager.create_tables()
        generator = DataGenerator(db_manager, settings, seed=args.seed)
        generator.generate_sample_dataset(
            aircraft_count=args.aircraft,
            user_count=args.users,
            flight_count=args.flights,
            booking_count=args.bookings,
        )
    finally:
        db_manager.close_all_connections()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='SkyWings airline booking backend')
    subparsers = parser.add_subparsers(dest='command', required=True)

    serve_parser = subparsers.add_parser('serve', help='Run the HTTP API server')
    serve_parser.add_argument('--host', help='Bind address (defaults to HOST)')
    serve_parser.add_argument('--port', type=int, help='Bind port (defaults to PORT)')
    serve_parser.set_defaults(handler=serve)

    init_parser = subparsers.add_parser('init-db', help='Create database tables and seed airports')
    init_parser.add_argument('--drop', action='store_true',
                             help='Drop existing tables before creating them')
    init_parser.set_defaults(handler=init_db)

    seed_parser = subparsers.add_parser('seed', help='Generate sample data')
    seed_parser.add_argument('--aircraft', type=int, default=10, help='Number of aircraft')
    seed_parser.add_argument('--users', type=int, default=50,
                             help='Number of users; the first one is an admin')
    seed_parser.add_argument('--flights', type=int, default=60, help='Number of flights')
    seed_parser.add_argument('--bookings', type=int, default=200, help='Number of bookings')
    seed_parser.add_argument('--seed', type=int, help='Random seed for reproducibility')
    seed_parser.set_defaults(handler=seed)

    return parser


def main(argv=None):
    """Main entry point"""
    load_dotenv()
    args = build_parser().parse_args(argv)
    settings = Settings()

    if args.command != 'serve':
        logging.basicConfig(level=settings.log_level.upper())

    try:
        args.handler(settings, args)
    except KeyboardInterrupt:
        return 130
    return 0


if __name__ == '__main__':
    sys.exit(main())
