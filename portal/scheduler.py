import logging
from flask_apscheduler import APScheduler
from flask import Flask

logger = logging.getLogger("scheduler")

scheduler = APScheduler()

def job_sincronizar_metricas(app: Flask):
    """
    Recalcula las métricas en días del dashboard para los pedidos que
    todavía no las tienen guardadas.
    """
    with app.app_context():
        if getattr(job_sincronizar_metricas, 'running', False):
            logger.warning("La sincronización de métricas ya está en ejecución. Omitiendo.")
            return

        setattr(job_sincronizar_metricas, 'running', True)
        logger.info("--- Iniciando sincronización de métricas ---")

        try:
            # Importación diferida para evitar ciclos con los controladores
            from portal.controllers.dashboard_controller import DashboardController

            resultado = DashboardController().sincronizar_metricas()
            logger.info(f"--- Sincronización de métricas completada: {resultado.get('data')} ---")
        except Exception as e:
            logger.error(f"La sincronización de métricas falló: {e}", exc_info=True)
        finally:
            setattr(job_sincronizar_metricas, 'running', False)


def init_scheduler(app: Flask):
    """
    Inicializa el scheduler con el job de métricas si está habilitado.
    """
    if not app.config.get('SYNC_METRICAS_ENABLED', False):
        logger.info("Sincronización periódica de métricas DESHABILITADA.")
        return

    minutos = app.config.get('SYNC_METRICAS_MINUTOS', 30)
    logger.info(f"Inicializando Scheduler. Job 'sincronizar_metricas' cada {minutos} minutos.")

    scheduler.init_app(app)
    scheduler.add_job(
        id='sincronizar_metricas',
        func=job_sincronizar_metricas,
        args=[app],
        trigger='interval',
        minutes=minutos,
        replace_existing=True
    )
    scheduler.start()
