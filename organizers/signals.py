from django.db.models.signals import pre_save, post_delete
from django.dispatch import receiver

from core.utils.file_cleanup import cleanup_replaced_file, cleanup_file_on_delete
from .models import OrganizerDocument


@receiver(pre_save, sender=OrganizerDocument)
def organizer_document_cleanup_on_change(sender, instance, **kwargs):
    cleanup_replaced_file(instance, "file")


@receiver(post_delete, sender=OrganizerDocument)
def organizer_document_cleanup_on_delete(sender, instance, **kwargs):
    cleanup_file_on_delete(instance, "file")
