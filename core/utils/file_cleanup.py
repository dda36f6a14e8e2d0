from django.db.models.fields.files import FieldFile


def _stored(value) -> bool:
    return isinstance(value, FieldFile) and bool(value) and bool(value.name)


def cleanup_replaced_file(instance, field_name: str):
    """
    Before an existing row is saved, drop the previously stored file if the
    field was cleared or now points at a different file.
    """
    if not instance.pk:
        return

    model = instance.__class__
    old_instance = model.objects.filter(pk=instance.pk).only(field_name).first()
    if old_instance is None:
        return

    old_file = getattr(old_instance, field_name, None)
    if not _stored(old_file):
        return

    new_file = getattr(instance, field_name, None)
    if not _stored(new_file) or old_file.name != new_file.name:
        old_file.delete(save=False)


def cleanup_file_on_delete(instance, field_name: str):
    """Remove the stored file once its row is gone."""
    f = getattr(instance, field_name, None)
    if _stored(f):
        f.delete(save=False)
