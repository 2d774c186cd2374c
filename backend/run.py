from emojirace import create_app, socketio
from emojirace.services import shutdown_services

app = create_app()

if __name__ == '__main__':
    # Use SocketIO server to enable websockets in dev
    try:
        socketio.run(app, debug=True)
    finally:
        shutdown_services(app)
