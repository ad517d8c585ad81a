import logging
from datetime import datetime, timedelta, timezone

from oss_multipart.store import ObjectStoreClient, PendingUpload, StoreError

logger = logging.getLogger(__name__)


def abort_dangling_uploads(
    store: ObjectStoreClient,
    bucket: str,
    prefix: str = "",
    older_than: timedelta | None = None,
    dry_run: bool = False,
) -> list[PendingUpload]:
    """Abort in-progress multipart sessions under prefix, returns those aborted.

    Sessions whose abort fails are logged and left out of the result.
    """
    pending = store.list_multipart_uploads(bucket, prefix)
    now = datetime.now(timezone.utc)
    out: list[PendingUpload] = []
    for upload in pending:
        if older_than is not None and upload.initiated is not None:
            initiated = upload.initiated
            if initiated.tzinfo is None:
                initiated = initiated.replace(tzinfo=timezone.utc)
            if now - initiated < older_than:
                logger.debug(f"Keeping recent upload {upload.session_id} for {upload.key}")
                continue
        if dry_run:
            logger.info(f"Would abort {upload.session_id} for {bucket}/{upload.key}")
            out.append(upload)
            continue
        try:
            store.abort_pending(bucket, upload)
        except StoreError as e:
            logger.error(f"Cannot abort {upload.session_id} for {bucket}/{upload.key}: {e}")
            continue
        logger.info(f"Aborted {upload.session_id} for {bucket}/{upload.key}")
        out.append(upload)
    return out
