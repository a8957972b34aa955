from arksync import create_app, socketio

# create_app seeds missing records and starts the timer poller
app = create_app()

if __name__ == '__main__':
    # Use SocketIO server to enable websockets in dev
    socketio.run(app, debug=True, use_reloader=False)
