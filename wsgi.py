from chapterledger import create_app

app = create_app()
