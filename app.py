"""Local development server: `python app.py` serves the API on PORT (3001)."""

from study_buddy import create_app, runtime

app = create_app()

if __name__ == '__main__':
    app.run(debug=runtime.config.is_dev_like, port=runtime.config.port)
