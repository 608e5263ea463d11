import os
from portal import create_app

# Inicializar la aplicación Flask usando el factory
app = create_app()

if __name__ == "__main__":
    """
    Punto de entrada principal para ejecutar la aplicación Flask.
    """
    flask_port = int(os.environ.get("FLASK_PORT", 5000))

    app.run(
        host="0.0.0.0",
        port=flask_port,
        debug=app.config.get('DEBUG', False),
        use_reloader=False,  # el scheduler no debe arrancar dos veces
        threaded=True
    )
