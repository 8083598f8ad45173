from guestportal import create_app

app = create_app()
