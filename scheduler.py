import time
import threading
import logging
import schedule
from matching import process_pending_matches, requeue_stale_matches

logger = logging.getLogger(__name__)

def run_matching_batch(app):
    """Process a batch of pending candidate matches"""
    with app.app_context():
        try:
            return process_pending_matches(app.config["MATCH_WORKER_BATCH"])
        except Exception as e:
            logger.error(f"Error processing pending matches: {e}")
            return 0

def requeue_stale(app):
    """Put work items abandoned mid-run back in the queue"""
    with app.app_context():
        try:
            return requeue_stale_matches()
        except Exception as e:
            logger.error(f"Error requeueing stale matches: {e}")
            return 0

def schedule_tasks(app):
    """Schedule all background tasks"""
    # Candidate matching queue
    schedule.every(app.config["MATCH_WORKER_INTERVAL"]).seconds.do(run_matching_batch, app)

    # Recover items left in processing by a crashed worker
    schedule.every(15).minutes.do(requeue_stale, app)

    logger.info("Scheduled tasks configured")

def run_scheduler(poll_seconds=1):
    """Run the scheduler loop"""
    logger.info("Starting scheduler...")

    while True:
        try:
            schedule.run_pending()
            time.sleep(poll_seconds)
        except KeyboardInterrupt:
            logger.info("Scheduler stopped")
            break
        except Exception as e:
            logger.error(f"Scheduler error: {e}")
            time.sleep(30)  # Wait before retrying

def start_background_services(app):
    """Start the matching worker in a daemon thread"""
    logger.info("Starting background services...")

    schedule_tasks(app)

    scheduler_thread = threading.Thread(target=run_scheduler, daemon=True)
    scheduler_thread.start()
    logger.info("Scheduler started")

    return scheduler_thread
