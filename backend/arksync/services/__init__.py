"""Shared-state services: store, claim arbitration, countdown and broadcast.

Everything here is constructed once per Flask app by `build_services` and
reached from handlers through `current_app.extensions['arksync']`, keeping
transport concerns in the Socket.IO layer.
"""
from dataclasses import dataclass

from .arbitration import ArbitrationEngine, ContractRegistry
from .broadcast import Broadcaster
from .locks import RecordLocks
from .sessions import SessionRegistry
from .store import StateStore
from .timer import TimerController


@dataclass
class Services:
    socketio: object
    store: StateStore
    locks: RecordLocks
    sessions: SessionRegistry
    broadcaster: Broadcaster
    engine: ArbitrationEngine
    timer: TimerController


def build_services(app, socketio) -> Services:
    store = StateStore()
    locks = RecordLocks()
    broadcaster = Broadcaster(socketio, store)
    contracts = ContractRegistry.from_config(app.config.get('CLAIM_CONTRACTS'))
    return Services(
        socketio=socketio,
        store=store,
        locks=locks,
        sessions=SessionRegistry(),
        broadcaster=broadcaster,
        engine=ArbitrationEngine(store, locks, broadcaster, contracts),
        timer=TimerController(store, locks, broadcaster),
    )
