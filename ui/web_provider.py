from ui.provider import UIProvider


class WebProvider(UIProvider):
    """Queues every payload on the session; the browser polls /step and /events."""

    def __init__(self, session):
        self.session = session

    def story(self, payload):
        self.session.emit(payload)

    def status(self, payload):
        self.session.emit(payload)

    def combat(self, payload):
        self.session.emit(payload)

    def combat_log(self, text):
        self.session.emit({"type": "combat_log", "text": text})

    def system(self, text, data=None):
        self.session.emit({"type": "system", "text": text, "data": data})

    def error(self, text, data=None):
        self.session.emit({"type": "error", "text": text, "data": data})

    def choice(self, prompt, options):
        self.session.emit({"type": "choice", "prompt": prompt, "options": options})
        return None

    def text_input(self, prompt):
        self.session.emit({"type": "input", "prompt": prompt})
        return None
