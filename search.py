# search.py
import logging
import threading

from errors import NetworkError

logger = logging.getLogger("POS_Billing.Search")


class Debouncer:
    """
    Calls `callback` once input has been quiet for `delay` seconds.
    Each new call cancels the pending one; at most one timer is alive.
    """
    def __init__(self, delay: float, callback, timer_factory=threading.Timer):
        self.delay = delay
        self.callback = callback
        self._timer_factory = timer_factory
        self._timer = None
        # bumped on every schedule and cancel; a fire carrying an old
        # generation belongs to a superseded timer and is dropped
        self._generation = 0
        self._lock = threading.Lock()

    @property
    def pending(self):
        return self._timer is not None

    def __call__(self, *args):
        with self._lock:
            self._cancel_locked()
            timer = self._timer_factory(self.delay, self._fire, (self._generation,) + args)
            timer.daemon = True
            self._timer = timer
        timer.start()

    def cancel(self):
        with self._lock:
            self._cancel_locked()

    def _cancel_locked(self):
        self._generation += 1
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _fire(self, generation, *args):
        # runs on the timer thread
        with self._lock:
            if generation != self._generation:
                return
            self._timer = None
        self.callback(*args)


class ProductSearch:
    """
    Debounced product suggestions for the billing search box.
    on_results(query, products) is called from the timer thread; UI code
    must hand it over to its own thread.
    """
    def __init__(self, api, on_results, delay: float = 0.3, min_chars: int = 1,
                 timer_factory=threading.Timer):
        self.api = api
        self.on_results = on_results
        self.min_chars = min_chars
        self._debouncer = Debouncer(delay, self._run, timer_factory)

    def update(self, text: str):
        query = (text or "").strip()
        if len(query) < self.min_chars:
            self._debouncer.cancel()
            self.on_results(query, [])
            return
        self._debouncer(query)

    def cancel(self):
        self._debouncer.cancel()

    def _run(self, query):
        try:
            results = self.api.search_products(query)
        except NetworkError as e:
            logger.warning(f"Search for '{query}' failed: {e}")
            results = []
        logger.debug(f"Search '{query}': {len(results)} result(s)")
        self.on_results(query, results)
