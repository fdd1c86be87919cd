import atexit

from django.apps import AppConfig


class CorpusConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "corpus"
    verbose_name = "Corpus"

    def ready(self):
        from .sessions import get_session_manager

        # Remote stores outlive the process unless deleted explicitly
        atexit.register(get_session_manager().close_all)
