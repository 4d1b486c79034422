from __future__ import annotations
from pydantic import BaseModel, Field
from typing import List
import asyncio, logging, websockets, time

log = logging.getLogger(__name__)

class Glint(BaseModel):
    x:int; y:int

class Region(BaseModel):
    x:int; y:int; w:int; h:int; edge_px:int=0

class GlintEvent(BaseModel):
    ts: float = Field(default_factory=lambda: time.time())
    frame: int = 0
    glints: List[Glint] = []     # full-resolution space
    regions: List[Region] = []
    elapsed_ms: float = 0.0

    @classmethod
    def from_result(cls, res, frame:int=0) -> "GlintEvent":
        return cls(frame=frame, elapsed_ms=round(res.elapsed_ms, 3),
                   glints=[Glint(x=p.x, y=p.y) for p in res.full_res_glints],
                   regions=[Region(x=r.rect.x, y=r.rect.y, w=r.rect.w, h=r.rect.h,
                                   edge_px=int((r.edges > 0).sum())) for r in res.regions])

async def ws_broadcast(queue: "asyncio.Queue[str]", host="0.0.0.0", port=8765, started: asyncio.Event|None=None):
    clients=set()
    async def handler(websocket):
        clients.add(websocket)
        try:
            await websocket.wait_closed()
        finally:
            clients.discard(websocket)

    async def pump():
        while True:
            msg = await queue.get()
            results = await asyncio.gather(*[c.send(msg) for c in list(clients)], return_exceptions=True)
            for r in results:
                if isinstance(r, Exception):
                    log.debug("dropping message for closed client: %s", r)

    async with websockets.serve(handler, host, port):
        log.info("broadcasting glint events on ws://%s:%d", host, port)
        if started is not None: started.set()
        await pump()
