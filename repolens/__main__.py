from repolens.cli import app

app()
